# Docstring for attendance_recon/outputs/export_utils module
"""
export_utils.py

Ledger serialization and file exports.

Design goals
------------
- One header layout: the persisted ledger sheet and the CSV export both use
  the display headers from `config.MASTER_COLUMN_MAP`.
- Safe output: ensure parent directories exist before writing files.
- Consistent engine: always use the openpyxl engine for .xlsx output.
- Notebook-friendly: timestamped filenames for quick iteration.

Public API
----------
- ledger_to_sheet_frame(ledger) -> pd.DataFrame
- ledger_from_sheet_frame(frame) -> pd.DataFrame   (re-exported from cleaning)
- ledger_csv_frame(ledger, date_filter=None) -> pd.DataFrame
- export_ledger_csv(ledger, output_path, date_filter=None) -> Path
- write_df_excel(df, output_path=None, *, out_dir=REPORTS_OUTPUTS_DIR,
  filename_prefix="export", sheet_name="data", index=False) -> Path
- write_multi_sheet_excel(sheets, output_path, *, index=False) -> Path
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd

from ..cleaning.clean_ledger import coerce_ledger_frame, ledger_from_sheet_frame
from ..config import CSV_EXPORT_COLUMNS, MASTER_COLUMN_MAP, REPORTS_OUTPUTS_DIR, DateFilterConfig
from ..core.normalizers import apply_date_filter, to_timestamp_series

__all__ = [
    "ledger_to_sheet_frame",
    "ledger_from_sheet_frame",
    "ledger_csv_frame",
    "export_ledger_csv",
    "write_df_excel",
    "write_multi_sheet_excel",
]


EXCEL_SHEETNAME_LIMIT = 31


def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _timestamped_filename(prefix: str) -> str:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{stamp}.xlsx"


def ledger_to_sheet_frame(ledger: pd.DataFrame) -> pd.DataFrame:
    """Canonical ledger -> storage layout (display headers, MASTER_COLUMNS order)."""
    return coerce_ledger_frame(ledger).rename(columns=MASTER_COLUMN_MAP)


def ledger_csv_frame(
    ledger: pd.DataFrame,
    date_filter: DateFilterConfig | None = None,
) -> pd.DataFrame:
    """Ledger rows in CSV export order, optionally restricted to an event-date window."""
    df = coerce_ledger_frame(ledger)
    if date_filter is not None:
        df = df.assign(_event_ts=to_timestamp_series(df["event_starts_at"]))
        df = apply_date_filter(df, "_event_ts", date_filter).drop(columns="_event_ts")
    return df.rename(columns=MASTER_COLUMN_MAP)[CSV_EXPORT_COLUMNS].reset_index(drop=True)


def export_ledger_csv(
    ledger: pd.DataFrame,
    output_path: Path | str,
    date_filter: DateFilterConfig | None = None,
) -> Path:
    path = Path(output_path)
    _ensure_parent_dir(path)
    ledger_csv_frame(ledger, date_filter).to_csv(path, index=False)
    return path


def _truncate_sheet_name(name: str) -> str:
    return name[:EXCEL_SHEETNAME_LIMIT] if len(name) > EXCEL_SHEETNAME_LIMIT else name


def write_df_excel(
    df: pd.DataFrame,
    output_path: Path | str | None = None,
    *,
    out_dir: Path | str = REPORTS_OUTPUTS_DIR,
    filename_prefix: str = "export",
    sheet_name: str = "data",
    index: bool = False,
) -> Path:
    """
    Write a DataFrame to a single-sheet Excel file and return the output path.

    If output_path is None, a timestamped file is created under out_dir with
    the prefix filename_prefix.
    """
    if output_path is None:
        output_path = Path(out_dir) / _timestamped_filename(filename_prefix)
    path = Path(output_path)
    _ensure_parent_dir(path)
    df.to_excel(path, engine="openpyxl", sheet_name=_truncate_sheet_name(sheet_name), index=index)
    return path


def write_multi_sheet_excel(
    sheets: dict[str, pd.DataFrame],
    output_path: Path | str,
    *,
    index: bool = False,
) -> Path:
    """
    Write several DataFrames to one workbook, one sheet per dict key.

    Used by the sample-data generator to produce the input workbook.
    """
    path = Path(output_path)
    _ensure_parent_dir(path)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=_truncate_sheet_name(name), index=index)
    return path
