# Docstring for attendance_recon/cleaning/clean_rules module
"""
clean_rules.py

Cleaning and normalization for the pricing rule table.

Each rule row describes a membership package: its session category, package
price, per-session (unit) price and the four revenue-split percentages. Two
alias columns hold the preferred exact-match labels for the attendance side
(`attendance_alias`) and the payment-memo side (`payment_memo_alias`).

Core transformations
--------------------
1) Field resolution via `config.RULE_FIELD_CANDIDATES`.
2) Session category normalization:
   - raw label starting with "priv" -> "private", starting with "group" -> "group"
   - otherwise a truthy privateSession flag -> "private"
   - otherwise "group"
3) Numbers: price and sessions default to 0; unit_price and the split
   percentages stay missing (NaN) when blank, because a blank unit price
   means "use the paid amount" rather than "free".
4) Alias backfill: a missing alias column is filled from package_name.
   When the sheet lacks both alias columns the caller should persist the
   extended table once (see `rules_backfill_frame`).

Public API
----------
- normalize_session_type(raw_label, private_flag="") -> str
- clean_rules(raw_df) -> tuple[pd.DataFrame, bool]
- rules_backfill_frame(raw_df, clean_df) -> pd.DataFrame
- pricing_rules(clean_df) -> list[PricingRule]
"""

from __future__ import annotations

import warnings

import pandas as pd

from ..config import RULE_ALIAS_COLUMNS, RULE_FIELD_CANDIDATES, SESSION_GROUP, SESSION_PRIVATE
from ..core.models import PricingRule
from ..core.normalizers import coalesce_columns, find_column, to_bool, to_float, to_optional_float
from ..core.validators import validate_split_percentages

PERCENTAGE_COLUMNS = [
    "coach_percentage",
    "bgm_percentage",
    "management_percentage",
    "mfc_percentage",
]

RULE_COLUMNS = [
    "rule_id",
    "rule_name",
    "package_name",
    "session_type",
    "price",
    "sessions",
    "unit_price",
    *PERCENTAGE_COLUMNS,
    "attendance_alias",
    "payment_memo_alias",
]


def normalize_session_type(raw_label: str, private_flag: str = "") -> str:
    label = str(raw_label or "").strip().lower()
    if label.startswith("priv"):
        return SESSION_PRIVATE
    if label.startswith("group"):
        return SESSION_GROUP
    if to_bool(private_flag) is True:
        return SESSION_PRIVATE
    return SESSION_GROUP


def clean_rules(raw_df: pd.DataFrame) -> tuple[pd.DataFrame, bool]:
    """
    Clean and normalize the rules sheet.

    Returns:
        (clean_df, needs_backfill) where needs_backfill is True when the raw
        sheet had neither alias column and therefore should be written back
        with the derived aliases.
    """
    missing_aliases = [
        col for col in RULE_ALIAS_COLUMNS
        if find_column(raw_df.columns, RULE_FIELD_CANDIDATES[col]) is None
    ]
    needs_backfill = len(missing_aliases) == len(RULE_ALIAS_COLUMNS) and not raw_df.empty

    text = pd.DataFrame(index=raw_df.index)
    for canonical, candidates in RULE_FIELD_CANDIDATES.items():
        text[canonical] = coalesce_columns(raw_df, candidates)

    df = pd.DataFrame(index=raw_df.index)
    df["rule_id"] = text["rule_id"]
    df["rule_name"] = text["rule_name"]
    df["package_name"] = text["package_name"]
    df["session_type"] = [
        normalize_session_type(label, flag)
        for label, flag in zip(text["session_type"], text["private_flag"])
    ]
    df["price"] = text["price"].map(to_float).astype("float64")
    df["sessions"] = text["sessions"].map(to_float).astype("float64")
    df["unit_price"] = text["unit_price"].map(to_optional_float).astype("float64")
    for col in PERCENTAGE_COLUMNS:
        df[col] = text[col].map(to_optional_float).astype("float64")

    for col in RULE_ALIAS_COLUMNS:
        df[col] = df["package_name"] if col in missing_aliases else text[col]

    bad_splits = 0
    for row in df[PERCENTAGE_COLUMNS].itertuples(index=False):
        parts = [None if pd.isna(value) else float(value) for value in row]
        if not validate_split_percentages(*parts):
            bad_splits += 1
    if bad_splits > 0:
        warnings.warn(
            f"Rules sheet has {bad_splits} rules whose split percentages do not sum to 100.",
            stacklevel=2,
        )

    defaults = df[df["package_name"].eq("")]
    duplicated_defaults = defaults["session_type"][defaults["session_type"].duplicated()].unique()
    if len(duplicated_defaults) > 0:
        warnings.warn(
            "Rules sheet has more than one default rule for: "
            f"{', '.join(sorted(duplicated_defaults))}; the first one is used.",
            stacklevel=2,
        )

    return df[RULE_COLUMNS].reset_index(drop=True), needs_backfill


def rules_backfill_frame(raw_df: pd.DataFrame, clean_df: pd.DataFrame) -> pd.DataFrame:
    """Raw rules sheet extended with the derived alias columns, ready to persist."""
    extended = raw_df.reset_index(drop=True).copy()
    for col in RULE_ALIAS_COLUMNS:
        extended[col] = clean_df[col].to_numpy()
    return extended


def _optional(value: float) -> float | None:
    return None if pd.isna(value) else float(value)


def pricing_rules(clean_df: pd.DataFrame) -> list[PricingRule]:
    rules = []
    for row in clean_df.itertuples(index=False):
        rules.append(
            PricingRule(
                rule_id=row.rule_id,
                rule_name=row.rule_name,
                package_name=row.package_name,
                session_type=row.session_type,
                price=float(row.price),
                sessions=float(row.sessions),
                unit_price=_optional(row.unit_price),
                coach_percentage=_optional(row.coach_percentage),
                bgm_percentage=_optional(row.bgm_percentage),
                management_percentage=_optional(row.management_percentage),
                mfc_percentage=_optional(row.mfc_percentage),
                attendance_alias=row.attendance_alias,
                payment_memo_alias=row.payment_memo_alias,
            )
        )
    return rules
