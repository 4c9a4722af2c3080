# Docstring for attendance_recon/engines/payment_matcher module
"""
payment_matcher.py

Match one attendance record to the payment that paid for it.

Candidates are the payments of the same customer (case/whitespace
insensitive). Each candidate with a parseable date is scored as

    score = date_score + text_score

date_score
    1.0 when the payment falls on the same calendar day as the class,
    0.7 when it is at most 7 calendar days away, else 0.

text_score (first rule that applies)
    2.0  memo canonicalizes identically to a payment_memo_alias of any rule
         in the class's session category
    1.8  memo and such an alias contain one another
    1.5  memo and the membership label contain one another
    else token jaccard(membership label, memo)

The highest score wins (earlier payment on ties) and is accepted only at or
above MATCHING_CONFIG.payment_accept_threshold (1.1). An attendance record
without a parseable event date never matches.

Public API
----------
- memo_aliases(session_type, rules) -> list[str]
- date_score(event_ts, payment_ts) -> float
- text_score(membership_label, memo, aliases) -> float
- score_payment(attendance, payment, aliases) -> float | None
- find_matching_payment(attendance, payments, rules) -> PaymentRecord | None
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from ..config import MATCHING_CONFIG, MatchingConfig
from ..core.models import AttendanceRecord, PaymentRecord, PricingRule
from ..core.normalizers import (
    calendar_days_between,
    canonicalize,
    normalize_customer_name,
    tokenize,
)
from ..core.similarity import fuzzy_contains, jaccard
from .rule_resolver import classify_session_type


def memo_aliases(session_type: str, rules: Sequence[PricingRule]) -> list[str]:
    """Non-blank payment_memo_alias values of the rules in one session category."""
    return [
        rule.payment_memo_alias.strip()
        for rule in rules
        if rule.session_type == session_type and rule.payment_memo_alias.strip()
    ]


def date_score(
    event_ts: pd.Timestamp,
    payment_ts: pd.Timestamp,
    cfg: MatchingConfig = MATCHING_CONFIG,
) -> float:
    days = calendar_days_between(event_ts, payment_ts)
    if days == 0:
        return cfg.same_day_score
    if days <= cfg.near_date_window_days:
        return cfg.near_date_score
    return 0.0


def text_score(
    membership_label: str,
    memo: str,
    aliases: Sequence[str],
    cfg: MatchingConfig = MATCHING_CONFIG,
) -> float:
    canon_memo = canonicalize(memo)
    if any(canonicalize(alias) == canon_memo for alias in aliases):
        return cfg.alias_exact_score
    if any(fuzzy_contains(alias, memo) for alias in aliases):
        return cfg.alias_fuzzy_score
    if fuzzy_contains(membership_label, memo):
        return cfg.membership_fuzzy_score
    return jaccard(tokenize(membership_label), tokenize(memo))


def score_payment(
    attendance: AttendanceRecord,
    payment: PaymentRecord,
    aliases: Sequence[str],
    cfg: MatchingConfig = MATCHING_CONFIG,
) -> float | None:
    """Combined score, or None when either side has no usable date."""
    if attendance.event_ts is None or payment.payment_ts is None:
        return None
    return (
        date_score(attendance.event_ts, payment.payment_ts, cfg)
        + text_score(attendance.membership_name, payment.memo, aliases, cfg)
    )


def find_matching_payment(
    attendance: AttendanceRecord,
    payments: Sequence[PaymentRecord],
    rules: Sequence[PricingRule],
    cfg: MatchingConfig = MATCHING_CONFIG,
) -> PaymentRecord | None:
    if attendance.event_ts is None:
        return None

    customer = normalize_customer_name(attendance.customer_name)
    aliases = memo_aliases(classify_session_type(attendance.offering_type), rules)

    best_payment: PaymentRecord | None = None
    best_score: float | None = None
    for payment in payments:
        if normalize_customer_name(payment.customer_name) != customer:
            continue
        score = score_payment(attendance, payment, aliases, cfg)
        if score is None:
            continue
        if best_score is None or score > best_score:
            best_payment, best_score = payment, score

    if best_score is not None and best_score >= cfg.payment_accept_threshold:
        return best_payment
    return None
