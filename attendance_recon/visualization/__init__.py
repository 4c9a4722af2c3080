"""Summaries and charts for the master ledger."""
