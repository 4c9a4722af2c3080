# Docstring for attendance_recon/cleaning/clean_discounts module
"""
clean_discounts.py

Cleaning and normalization for the promotional discount table.

Core transformations
--------------------
- Field resolution via `config.DISCOUNT_FIELD_CANDIDATES`.
- match_type lowercased; anything other than exact/regex means "contains".
- coach_payment_type lowercased; defaults to "partial".
- applicable_percentage parsed (a trailing "%" is accepted), default 0.
- active parsed from TRUE/FALSE/yes/no/1/0; unknown values are inactive.
- name falls back to the discount code.

Public API
----------
- clean_discounts(raw_df) -> pd.DataFrame
- discount_records(clean_df) -> list[Discount]
"""

from __future__ import annotations

import pandas as pd

from ..config import DISCOUNT_FIELD_CANDIDATES
from ..core.models import Discount
from ..core.normalizers import coalesce_columns, to_bool, to_float

MATCH_TYPES = {"exact", "contains", "regex"}

DISCOUNT_COLUMNS = list(DISCOUNT_FIELD_CANDIDATES)


def _match_type(value: str) -> str:
    value = value.strip().lower()
    return value if value in MATCH_TYPES else "contains"


def _payment_type(value: str) -> str:
    value = value.strip().lower()
    return value or "partial"


def clean_discounts(raw_df: pd.DataFrame) -> pd.DataFrame:
    df = pd.DataFrame(index=raw_df.index)
    for canonical, candidates in DISCOUNT_FIELD_CANDIDATES.items():
        df[canonical] = coalesce_columns(raw_df, candidates)

    df["name"] = df["name"].where(df["name"] != "", df["discount_code"])
    df["match_type"] = df["match_type"].map(_match_type)
    df["coach_payment_type"] = df["coach_payment_type"].map(_payment_type)
    df["applicable_percentage"] = df["applicable_percentage"].map(to_float).astype("float64")
    df["active"] = df["active"].map(lambda value: to_bool(value) is True).astype(bool)

    return df[DISCOUNT_COLUMNS].reset_index(drop=True)


def discount_records(clean_df: pd.DataFrame) -> list[Discount]:
    return [
        Discount(
            discount_id=row.discount_id,
            name=row.name,
            discount_code=row.discount_code,
            match_type=row.match_type,
            applicable_percentage=float(row.applicable_percentage),
            coach_payment_type=row.coach_payment_type,
            active=bool(row.active),
        )
        for row in clean_df.itertuples(index=False)
    ]
