# Docstring for attendance_recon/cleaning/clean_payments module
"""
clean_payments.py

Cleaning and normalization for the accounting payments export.

Core transformations
--------------------
1) Field resolution via `config.PAYMENT_FIELD_CANDIDATES`.
2) Amounts: currency symbols, thousands separators and "%" are stripped;
   unparseable amounts become 0.0.
3) Parsed payment timestamp (`payment_ts`, NaT when unparseable).
4) Optional verified flag parsed to a nullable boolean.

Public API
----------
- clean_payments(raw_df) -> pd.DataFrame
- payment_records(clean_df) -> list[PaymentRecord]
"""

from __future__ import annotations

import warnings

import pandas as pd

from ..config import PAYMENT_FIELD_CANDIDATES
from ..core.models import PaymentRecord
from ..core.normalizers import (
    coalesce_columns,
    to_bool,
    to_float,
    to_optional_float,
    to_timestamp_series,
)

PAYMENT_COLUMNS = [*PAYMENT_FIELD_CANDIDATES, "payment_ts"]


def clean_payments(raw_df: pd.DataFrame) -> pd.DataFrame:
    df = pd.DataFrame(index=raw_df.index)
    for canonical, candidates in PAYMENT_FIELD_CANDIDATES.items():
        df[canonical] = coalesce_columns(raw_df, candidates)

    raw_amounts = df["amount"]
    invalid_amounts = int((raw_amounts.ne("") & raw_amounts.map(to_optional_float).isna()).sum())
    if invalid_amounts > 0:
        warnings.warn(
            f"Payments export has {invalid_amounts} unparseable amounts; treated as 0.",
            stacklevel=2,
        )
    df["amount"] = raw_amounts.map(to_float).astype("float64")

    df["is_verified"] = df["is_verified"].map(to_bool)
    df["payment_ts"] = to_timestamp_series(df["payment_date"])

    return df[PAYMENT_COLUMNS].reset_index(drop=True)


def payment_records(clean_df: pd.DataFrame) -> list[PaymentRecord]:
    records = []
    for row in clean_df.itertuples(index=False):
        payment_ts = None if pd.isna(row.payment_ts) else row.payment_ts
        records.append(
            PaymentRecord(
                payment_date=row.payment_date,
                payment_ts=payment_ts,
                customer_name=row.customer_name,
                memo=row.memo,
                amount=float(row.amount),
                invoice_number=row.invoice_number,
                category=row.category,
                is_verified=None if pd.isna(row.is_verified) else bool(row.is_verified),
            )
        )
    return records
