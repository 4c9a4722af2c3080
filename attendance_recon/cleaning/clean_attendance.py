# Docstring for attendance_recon/cleaning/clean_attendance module
"""
clean_attendance.py

Cleaning and normalization for the class attendance export.

The booking tool exports one row per check-in with headers that vary between
export versions ("Customer" vs "Customer Name", "Event Starts At" vs "Date").
This module resolves those alternates into a canonical frame and then into
typed `AttendanceRecord` values for the engines.

Core transformations
--------------------
1) Field resolution via `config.ATTENDANCE_FIELD_CANDIDATES`
   (first non-blank candidate per row wins).
2) Text normalization to stripped strings ("" for missing).
3) Parsed event timestamp (`event_ts`, naive, NaT when unparseable).
   The raw `event_starts_at` text is kept untouched for the unique key.

Expected output schema (canonical)
----------------------------------
- customer_name, event_starts_at, membership_name, offering_type,
  instructors, status, event_ts

Public API
----------
- clean_attendance(raw_df) -> pd.DataFrame
- attendance_records(clean_df) -> list[AttendanceRecord]
"""

from __future__ import annotations

import warnings

import pandas as pd

from ..config import ATTENDANCE_FIELD_CANDIDATES
from ..core.models import AttendanceRecord
from ..core.normalizers import coalesce_columns, to_timestamp_series

ATTENDANCE_COLUMNS = [*ATTENDANCE_FIELD_CANDIDATES, "event_ts"]


def clean_attendance(raw_df: pd.DataFrame) -> pd.DataFrame:
    """
    Clean and normalize the attendance export.

    Args:
        raw_df:
            Attendance sheet as read from storage (any header variant).

    Returns:
        Canonical attendance frame. Rows are never dropped here; date
        filtering happens later so unparseable dates only matter when a
        window is requested.
    """
    df = pd.DataFrame(index=raw_df.index)
    for canonical, candidates in ATTENDANCE_FIELD_CANDIDATES.items():
        df[canonical] = coalesce_columns(raw_df, candidates)

    df["event_ts"] = to_timestamp_series(df["event_starts_at"])

    invalid_dates = int((df["event_ts"].isna() & df["event_starts_at"].ne("")).sum())
    if invalid_dates > 0:
        warnings.warn(
            f"Attendance export has {invalid_dates} rows with unparseable event dates.",
            stacklevel=2,
        )

    return df[ATTENDANCE_COLUMNS].reset_index(drop=True)


def attendance_records(clean_df: pd.DataFrame) -> list[AttendanceRecord]:
    records = []
    for row in clean_df.itertuples(index=False):
        event_ts = None if pd.isna(row.event_ts) else row.event_ts
        records.append(
            AttendanceRecord(
                customer_name=row.customer_name,
                event_starts_at=row.event_starts_at,
                event_ts=event_ts,
                membership_name=row.membership_name,
                offering_type=row.offering_type,
                instructors=row.instructors,
                status=row.status,
            )
        )
    return records
