# Docstring for attendance_recon/cleaning/clean_ledger module
"""
clean_ledger.py

Read-side normalization for the persisted master ledger.

The ledger sheet is written with display headers ("Customer Name",
"Coach Amount", ...), but older copies may carry canonical or camelCase
headers. Whatever the variant, this module returns a frame with exactly
`config.MASTER_COLUMNS` and stable dtypes, so a ledger read back from storage
compares equal to the one that was written.

Public API
----------
- empty_ledger() -> pd.DataFrame
- coerce_ledger_frame(df) -> pd.DataFrame
- ledger_from_sheet_frame(frame) -> pd.DataFrame
"""

from __future__ import annotations

import pandas as pd

from ..config import (
    DEFAULT_SPLITS,
    MASTER_COLUMN_MAP,
    MASTER_COLUMNS,
    MASTER_NUMERIC_COLUMNS,
    MASTER_TEXT_COLUMNS,
    SESSION_GROUP,
    SPLIT_PERCENTAGE_COLUMNS,
    VERIFICATION_STATUS,
)
from ..core.normalizers import coalesce_columns, to_float, to_optional_float


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _header_candidates(canonical: str) -> tuple[str, ...]:
    return (MASTER_COLUMN_MAP[canonical], canonical, _camel(canonical))


def empty_ledger() -> pd.DataFrame:
    return coerce_ledger_frame(pd.DataFrame(columns=MASTER_COLUMNS))


def coerce_ledger_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Select MASTER_COLUMNS in order with object text and float64 numbers."""
    out = df.reindex(columns=MASTER_COLUMNS).reset_index(drop=True)
    for col in MASTER_TEXT_COLUMNS:
        out[col] = out[col].fillna("").astype(str).astype("object")
    for col in MASTER_NUMERIC_COLUMNS:
        out[col] = out[col].map(to_float).astype("float64")
    return out


def ledger_from_sheet_frame(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Map a persisted ledger sheet (any header variant) to the canonical ledger.

    Missing verification status reads as "Not Verified"; missing session
    type reads as "group"; missing split percentages are filled with the
    session-category defaults.
    """
    if frame.empty:
        return empty_ledger()

    text = pd.DataFrame(index=frame.index)
    for canonical in MASTER_COLUMNS:
        text[canonical] = coalesce_columns(frame, _header_candidates(canonical))

    text["verification_status"] = text["verification_status"].where(
        text["verification_status"] != "", VERIFICATION_STATUS.not_verified
    )
    text["session_type"] = text["session_type"].where(text["session_type"] != "", SESSION_GROUP)

    for part, col in SPLIT_PERCENTAGE_COLUMNS.items():
        parsed = text[col].map(to_optional_float)
        defaults = text["session_type"].map(
            lambda session: DEFAULT_SPLITS.get(session, DEFAULT_SPLITS[SESSION_GROUP]).as_dict()[part]
        )
        text[col] = [
            default if value is None or pd.isna(value) else value
            for value, default in zip(parsed, defaults)
        ]

    return coerce_ledger_frame(text)
