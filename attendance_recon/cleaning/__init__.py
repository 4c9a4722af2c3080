"""Ingestion adapters: raw sheets -> canonical frames -> typed records."""
