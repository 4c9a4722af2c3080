"""
similarity.py

Text similarity used by both the payment matcher and the rule resolver.

Both helpers compare canonicalized text (see normalizers.canonicalize), so
case, punctuation, diacritics and known synonyms never affect a score.
"""

from __future__ import annotations

from typing import AbstractSet, Any

from .normalizers import canonicalize


def fuzzy_contains(a: Any, b: Any) -> bool:
    """True if canonical `a` contains canonical `b` or the other way round."""
    ca = canonicalize(a)
    cb = canonicalize(b)
    return cb in ca or ca in cb


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """
    Token-set similarity |a & b| / |a | b| in [0, 1].

    Two empty sets are identical (1.0).
    """
    if not a and not b:
        return 1.0
    union = len(a | b)
    if union == 0:
        return 0.0
    return len(a & b) / union
