# Docstring for attendance_recon/engines/rule_resolver module
"""
rule_resolver.py

Session classification and pricing-rule lookup for attendance records.

Given a membership label from the attendance export and the session category
of the class, pick the pricing rule that determines the expected session
price and revenue split.

Precedence (first match wins)
-----------------------------
1) Exact: a same-category rule whose attendance_alias canonicalizes to the
   same text as the membership label.
2) Exact: a same-category rule whose package_name canonicalizes identically.
3) Fuzzy: best same-category rule by score
     - alias present:   2.0 if alias and label contain one another,
                        else 1.5 * token jaccard(label, alias)
     - no alias:        1.5 if package_name and label contain one another,
                        else token jaccard(label, package_name)
   accepted when the best score >= MATCHING_CONFIG.rule_accept_threshold.
   Equal scores keep the earlier rule.
4) Fallback: the category's default rule (blank package_name), else None.

Public API
----------
- classify_session_type(offering_label) -> "group" | "private"
- score_rule(membership_label, rule) -> float
- find_matching_rule(membership_label, session_type, rules) -> PricingRule | None
"""

from __future__ import annotations

from typing import Sequence

from ..config import (
    MATCHING_CONFIG,
    PRIVATE_SESSION_MARKERS,
    SESSION_GROUP,
    SESSION_PRIVATE,
    MatchingConfig,
)
from ..core.models import PricingRule
from ..core.normalizers import canonicalize, to_text, tokenize
from ..core.similarity import fuzzy_contains, jaccard


def classify_session_type(offering_label: object) -> str:
    """Private when the offering label mentions a private/1-to-1 class, else group."""
    label = to_text(offering_label).lower()
    if any(marker in label for marker in PRIVATE_SESSION_MARKERS):
        return SESSION_PRIVATE
    return SESSION_GROUP


def score_rule(
    membership_label: str,
    rule: PricingRule,
    cfg: MatchingConfig = MATCHING_CONFIG,
) -> float:
    membership_tokens = tokenize(membership_label)
    alias = rule.attendance_alias.strip()
    package_name = rule.package_name.strip()

    if alias:
        if fuzzy_contains(alias, membership_label):
            return cfg.rule_alias_contains_score
        return cfg.rule_alias_jaccard_weight * jaccard(membership_tokens, tokenize(alias))
    if package_name:
        if fuzzy_contains(package_name, membership_label):
            return cfg.rule_package_contains_score
        return jaccard(membership_tokens, tokenize(package_name))
    return 0.0


def find_matching_rule(
    membership_label: str,
    session_type: str,
    rules: Sequence[PricingRule],
    cfg: MatchingConfig = MATCHING_CONFIG,
) -> PricingRule | None:
    candidates = [rule for rule in rules if rule.session_type == session_type]
    if not candidates:
        return None

    canon_membership = canonicalize(membership_label)

    for rule in candidates:
        alias = rule.attendance_alias.strip()
        if alias and canonicalize(alias) == canon_membership:
            return rule

    for rule in candidates:
        package_name = rule.package_name.strip()
        if package_name and canonicalize(package_name) == canon_membership:
            return rule

    best_rule: PricingRule | None = None
    best_score = 0.0
    for rule in candidates:
        score = score_rule(membership_label, rule, cfg)
        if score > best_score:
            best_rule, best_score = rule, score
    if best_rule is not None and best_score >= cfg.rule_accept_threshold:
        return best_rule

    return next((rule for rule in candidates if rule.is_default), None)
