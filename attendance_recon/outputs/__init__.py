"""Ledger serialization and file exports."""
