"""Matching, pricing and reconciliation engines."""
