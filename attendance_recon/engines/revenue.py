# Docstring for attendance_recon/engines/revenue module
"""
revenue.py

Session price and revenue-split calculation.

Base price
----------
The rule's unit (per-session) price when it is a positive number, otherwise
the matched payment's amount.

Discount application
--------------------
- no discount            -> base
- coach_payment_type free    -> 0
- coach_payment_type full    -> base (already paid in full, not scaled)
- coach_payment_type partial -> base * (1 - pct/100) when pct > 0
- anything else          -> base

Split
-----
Each of coach / BGM / management / MFC gets price * pct / 100, rounded to
cents half away from zero. Percentages come from the resolved rule verbatim
(a blank percentage counts as 0) or, without a rule, from
config.DEFAULT_SPLITS for the session category.

Package price and the undiscounted session price are reported separately
and never pass through any discount factor.

Public API
----------
- base_session_price(base_amount, rule) -> float
- calculate_discounted_session_price(base_amount, rule, discount_info) -> float
- split_percentages(rule, session_type) -> SplitPercentages
- calculate_amounts(session_price, rule, session_type) -> dict[str, float]
"""

from __future__ import annotations

from ..config import DEFAULT_SPLITS, SESSION_GROUP, SplitPercentages
from ..core.models import Discount, PricingRule
from ..core.normalizers import round2


def base_session_price(base_amount: float, rule: PricingRule | None) -> float:
    if rule is not None and rule.unit_price is not None and rule.unit_price > 0:
        return float(rule.unit_price)
    return float(base_amount or 0.0)


def calculate_discounted_session_price(
    base_amount: float,
    rule: PricingRule | None,
    discount_info: Discount | None,
) -> float:
    price = base_session_price(base_amount, rule)
    if discount_info is None:
        return price

    pct = discount_info.applicable_percentage or 0.0
    payment_type = (discount_info.coach_payment_type or "partial").lower()
    if payment_type == "free":
        return 0.0
    if payment_type == "full":
        return price
    if payment_type == "partial" and pct > 0:
        return price * (1 - pct / 100)
    return price


def split_percentages(rule: PricingRule | None, session_type: str) -> SplitPercentages:
    if rule is None:
        return DEFAULT_SPLITS.get(session_type, DEFAULT_SPLITS[SESSION_GROUP])
    return SplitPercentages(
        coach=rule.coach_percentage or 0.0,
        bgm=rule.bgm_percentage or 0.0,
        management=rule.management_percentage or 0.0,
        mfc=rule.mfc_percentage or 0.0,
    )


def calculate_amounts(
    session_price: float,
    rule: PricingRule | None,
    session_type: str,
) -> dict[str, float]:
    splits = split_percentages(rule, session_type)
    return {
        part: round2(session_price * pct / 100)
        for part, pct in splits.as_dict().items()
    }
