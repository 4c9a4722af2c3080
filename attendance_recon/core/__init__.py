"""Shared models, normalization, similarity and validation helpers."""
