# Docstring for attendance_recon/core/validators module
"""
validators.py

Shared validation helpers for configuration and frame checks across cleaners
and engines.

Public API
----------
- normalize_date_filter_config(date_filter=None) -> tuple[date | None, date | None]
- validate_required_columns(df, required_cols) -> None
- validate_split_percentages(coach, bgm, management, mfc) -> bool

Internal helpers
----------------
Underscore-prefixed helpers are intentionally not part of the public API.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

import pandas as pd

from ..config import DATE_FILTER_CONFIG, DateFilterConfig


def _coerce_date_value(value: object, field_name: str) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip() == "":
        return None
    try:
        parsed = pd.to_datetime(value, errors="raise")
    except (ValueError, TypeError) as exc:
        raise ValueError(
            f"Invalid {field_name}: {value!r}. Expected a date or YYYY-MM-DD string."
        ) from exc
    if pd.isna(parsed):
        raise ValueError(
            f"Invalid {field_name}: {value!r}. Expected a date or YYYY-MM-DD string."
        )
    return parsed.date()


def normalize_date_filter_config(
    date_filter: DateFilterConfig | None = None,
) -> tuple[date | None, date | None]:
    cfg = date_filter or DATE_FILTER_CONFIG
    date_start = _coerce_date_value(cfg.date_start, "date_start")
    date_end = _coerce_date_value(cfg.date_end, "date_end")
    if date_start is not None and date_end is not None and date_start > date_end:
        raise ValueError(
            f"Invalid date range: date_start {date_start} is after date_end {date_end}."
        )
    return date_start, date_end


def validate_required_columns(df: pd.DataFrame, required_cols: Iterable[str]) -> None:
    missing = [col for col in required_cols if col not in df.columns]
    if missing:
        missing_list = ", ".join(missing)
        raise ValueError(f"Missing required columns: {missing_list}")


def validate_split_percentages(
    coach: float | None,
    bgm: float | None,
    management: float | None,
    mfc: float | None,
    *,
    tolerance: float = 0.01,
) -> bool:
    """True when all four percentages are present and sum to 100 (within tolerance)."""
    parts = (coach, bgm, management, mfc)
    if any(part is None for part in parts):
        return False
    return abs(sum(parts) - 100.0) <= tolerance
