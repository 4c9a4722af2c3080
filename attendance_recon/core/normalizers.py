# Docstring for attendance_recon/core/normalizers module
"""
normalizers.py

Shared normalization helpers for canonical data cleaning across engines.

Includes the text canonicalizer used by every fuzzy comparison, value coercion
for messy spreadsheet cells, date parsing, monetary rounding, and the
attendance unique key.

Design goals
------------
- Single source of truth for text canonicalization, dates, amounts and keys.
- Total functions: every helper accepts None/NaN/blank input and returns a
  neutral value ("" / 0.0 / None) instead of raising.
- Deterministic output so a forced re-run reproduces identical ledger rows.

Public API
----------
- strip_diacritics(text) -> str
- canonicalize(text) -> str
- tokenize(text) -> set[str]
- normalize_customer_name(name) -> str
- to_text(value) -> str
- to_float(value, default=0.0) -> float
- to_optional_float(value) -> float | None
- to_bool(value) -> bool | None
- parse_date(value, dayfirst=False) -> pd.Timestamp | None
- to_timestamp_series(series) -> pd.Series
- calendar_days_between(a, b) -> int
- round2(value) -> float
- round2_series(series) -> pd.Series
- build_unique_key(event_starts_at, customer, membership, instructors) -> str
- find_column(columns, candidates) -> str | None
- coalesce_columns(df, candidates) -> pd.Series
- apply_date_filter(df, column, date_filter=None) -> pd.DataFrame
"""

from __future__ import annotations

import math
import re
import unicodedata
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from numbers import Integral, Real
from typing import Any, Iterable

import pandas as pd

from ..config import CANONICAL_SYNONYMS, DateFilterConfig
from .validators import normalize_date_filter_config


_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_SYNONYMS = tuple((re.compile(pattern), repl) for pattern, repl in CANONICAL_SYNONYMS)
_KEY_UNSAFE = re.compile(r"[^a-zA-Z0-9_]")
_AMOUNT_NOISE = re.compile(r"[%$£€,\s]")

_TRUE_STRINGS = {"true", "yes", "y", "t", "1"}
_FALSE_STRINGS = {"false", "no", "n", "f", "0"}


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):          # list-like cells
        return False


# --- Text -------------------------------------------------------------------------------


def strip_diacritics(text: str) -> str:
    """Drop combining marks after NFD decomposition ('Café' -> 'Cafe')."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _collapse_synonyms(text: str) -> str:
    for pattern, repl in _SYNONYMS:
        text = pattern.sub(repl, text)
    return _WHITESPACE.sub(" ", text).strip()


def canonicalize(text: Any) -> str:
    """
    Reduce a free-text label to its comparable form.

    Lowercase, strip diacritics, turn punctuation into single spaces, then
    collapse domain synonyms ("5 packs" -> "5 pack", "2x per week" -> "2xweek",
    "Pay As You Go single session" -> "single ...") and drop qualifier noise
    ("adult", "junior", ...).

    Synonym passes repeat until the text stops changing, so the result is a
    fixed point: canonicalize(canonicalize(x)) == canonicalize(x).
    """
    if _is_missing(text):
        return ""
    return _canonical_text(str(text))


@lru_cache(maxsize=16384)
def _canonical_text(text: str) -> str:
    lowered = strip_diacritics(text.lower())
    cleaned = _WHITESPACE.sub(" ", _NON_ALNUM.sub(" ", lowered)).strip()

    current = cleaned
    while True:
        collapsed = _collapse_synonyms(current)
        if collapsed == current:
            return collapsed
        current = collapsed


def tokenize(text: Any) -> set[str]:
    """Canonicalize then split on whitespace into a token set."""
    canon = canonicalize(text)
    return set(canon.split()) if canon else set()


def normalize_customer_name(name: Any) -> str:
    """Case- and whitespace-insensitive customer key."""
    return _WHITESPACE.sub(" ", to_text(name).lower()).strip()


# --- Cell coercion ----------------------------------------------------------------------


def to_text(value: Any) -> str:
    """
    Convert a spreadsheet cell to stripped text.

    Missing values become "", datetimes become ISO strings and integer-like
    floats lose their trailing ".0" (invoice 1001.0 -> "1001").
    """
    if _is_missing(value):
        return ""
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, Real) and not isinstance(value, Integral):
        if float(value).is_integer():
            return str(int(value))
        return repr(float(value))
    return str(value).strip()


def to_optional_float(value: Any) -> float | None:
    """Parse a number from a cell; None when blank or unparseable."""
    if _is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, Real):
        number = float(value)
    else:
        raw = _AMOUNT_NOISE.sub("", str(value))
        if raw.startswith("(") and raw.endswith(")"):   # accounting negative
            raw = "-" + raw[1:-1]
        try:
            number = float(raw)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def to_float(value: Any, default: float = 0.0) -> float:
    """Parse a number from a cell; unparseable amounts default to 0."""
    number = to_optional_float(value)
    return default if number is None else number


def to_bool(value: Any) -> bool | None:
    if _is_missing(value):
        return None
    if isinstance(value, bool):
        return value
    text = to_text(value).lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return None


# --- Dates ----------------------------------------------------------------------------------


def parse_date(value: Any, *, dayfirst: bool = False) -> pd.Timestamp | None:
    """
    Parse a date/datetime cell into a naive Timestamp.

    Timezone-aware values are converted to UTC first. Bare numbers are not
    treated as dates. Returns None when the value cannot be parsed.
    """
    if _is_missing(value) or isinstance(value, (bool, Real)):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        parsed = pd.to_datetime(value, errors="coerce", dayfirst=dayfirst)
    except (ValueError, TypeError, OverflowError):
        return None
    if _is_missing(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed


def to_timestamp_series(series: pd.Series, *, dayfirst: bool = False) -> pd.Series:
    """Vectorized parse_date producing datetime64 with NaT for invalid entries."""
    parsed = series.map(lambda value: parse_date(value, dayfirst=dayfirst))
    return pd.to_datetime(parsed, errors="coerce")


def calendar_days_between(first: pd.Timestamp, second: pd.Timestamp) -> int:
    """Absolute number of calendar days between the dates of two timestamps."""
    return abs((first.normalize() - second.normalize()).days)


# --- Money ------------------------------------------------------------------------------------

_CENT = Decimal("0.01")


def round2(value: Any) -> float:
    """
    Round to 2 decimals, half away from zero.

    Works on the shortest decimal repr of the float, so 6.525 -> 6.53 even
    though its binary value is slightly below 6.525.
    """
    number = to_float(value)
    quantized = Decimal(repr(number)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return float(quantized) + 0.0          # normalize -0.0


def round2_series(series: pd.Series) -> pd.Series:
    return series.map(round2).astype("float64")


# --- Keys ----------------------------------------------------------------------------------------


def build_unique_key(
    event_starts_at: Any,
    customer: Any,
    membership: Any,
    instructors: Any,
) -> str:
    """
    Deterministic ledger key for an attendance record.

    Every character outside [A-Za-z0-9_] is replaced by "_" so keys stay
    compatible with ledgers already persisted in that format.
    """
    raw = "_".join(to_text(part) for part in (event_starts_at, customer, membership, instructors))
    return _KEY_UNSAFE.sub("_", raw)


# --- Field resolution ----------------------------------------------------------------------------


def find_column(columns: Iterable[Any], candidates: Iterable[str]) -> str | None:
    """Return the first header matching a candidate (case-insensitive, trimmed)."""
    lookup: dict[str, Any] = {}
    for col in columns:
        lookup.setdefault(str(col).strip().lower(), col)
    for candidate in candidates:
        found = lookup.get(candidate.strip().lower())
        if found is not None:
            return found
    return None


def coalesce_columns(df: pd.DataFrame, candidates: Iterable[str]) -> pd.Series:
    """
    Resolve one canonical text field from alternate raw headers.

    Candidate headers are tried in order; for each row the first non-blank
    value wins. Returns "" where no candidate holds a value.
    """
    result = pd.Series("", index=df.index, dtype="object")
    lookup: dict[str, Any] = {}
    for col in df.columns:
        lookup.setdefault(str(col).strip().lower(), col)

    seen: set[Any] = set()
    for candidate in candidates:
        col = lookup.get(candidate.strip().lower())
        if col is None or col in seen:
            continue
        seen.add(col)
        values = df[col].map(to_text)
        result = result.where(result != "", values)
    return result


# --- Date filter ---------------------------------------------------------------------------------


def apply_date_filter(
    df: pd.DataFrame,
    column: str,
    date_filter: DateFilterConfig | None = None,
) -> pd.DataFrame:
    """
    Keep rows whose date in `column` falls inside the inclusive window.

    Bounds compare calendar dates, so an end date keeps events later that
    day. Rows with unparseable dates are dropped whenever a bound is set;
    with no bounds the frame is returned unchanged.
    """
    date_start, date_end = normalize_date_filter_config(date_filter)
    if date_start is None and date_end is None:
        return df

    dates = pd.to_datetime(df[column], errors="coerce")
    if getattr(dates.dt, "tz", None) is not None:
        dates = dates.dt.tz_convert("UTC").dt.tz_localize(None)
    days = dates.dt.normalize()

    mask = dates.notna()
    if date_start is not None:
        mask &= days >= pd.Timestamp(date_start)
    if date_end is not None:
        mask &= days <= pd.Timestamp(date_end)
    return df.loc[mask].copy()
