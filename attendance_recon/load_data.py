# Docstring for attendance_recon/load_data module
"""
load_data.py

Table storage adapters and input loaders for the reconciliation pipeline.

This module provides thin, predictable I/O around the external workbook that
holds the attendance export, the payments export, the pricing rules, the
discount table and the persisted master ledger. The intent is to keep file
handling separate from the cleaning logic in `cleaning/` and the matching
logic in `engines/`.

Design goals
------------
- Separation of concerns: stores only read and write whole tables.
- Atomic replace: a write never leaves a half-written table behind; content
  goes to a temporary file that then replaces the target in one step.
- Raw values: tables are read with dtype=object so ID-like fields and
  timestamps are not coerced before cleaning.
- Degrade, don't abort: a missing or unreadable input sheet becomes an
  empty frame with a warning.

Store contract
--------------
- read_table(name) -> pd.DataFrame      (raises TableNotFoundError if absent)
- write_table(name, frame) -> None      (clears and rewrites the whole table)

Public API
----------
- TableNotFoundError
- TableStore (protocol)
- InMemoryTableStore()
- CsvDirectoryStore(directory)
- ExcelWorkbookStore(path)
- open_store(path) -> TableStore
- load_all_inputs(store, sheets=SHEET_NAMES) -> dict[str, pd.DataFrame]
- load_ledger(store, sheet_name=SHEET_NAMES.master) -> pd.DataFrame
"""

from __future__ import annotations

import os
import tempfile
import warnings
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Protocol

import pandas as pd

from .config import SHEET_NAMES, SheetNames


class TableNotFoundError(KeyError):
    """Raised by a store when the named table does not exist."""


class TableStore(Protocol):
    def read_table(self, name: str) -> pd.DataFrame: ...

    def write_table(self, name: str, frame: pd.DataFrame) -> None: ...


def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _atomic_replace(target: Path, write_fn, suffix: str) -> None:
    """Write through `write_fn(tmp_path)` then move the temp file over target."""
    _ensure_parent_dir(target)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.stem}_", suffix=suffix)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        write_fn(tmp_path)
        os.replace(tmp_path, target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


class InMemoryTableStore:

    """Dict-backed store. Frames are copied in both directions."""

    def __init__(self, tables: dict[str, pd.DataFrame] | None = None) -> None:
        self._tables: dict[str, pd.DataFrame] = {
            name: frame.copy() for name, frame in (tables or {}).items()
        }

    def read_table(self, name: str) -> pd.DataFrame:
        if name not in self._tables:
            raise TableNotFoundError(name)
        return self._tables[name].copy()

    def write_table(self, name: str, frame: pd.DataFrame) -> None:
        self._tables[name] = frame.copy()

    def table_names(self) -> list[str]:
        return list(self._tables)


class CsvDirectoryStore:

    """One `<name>.csv` file per table inside a directory."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self.directory / f"{name}.csv"

    def read_table(self, name: str) -> pd.DataFrame:
        path = self._path(name)
        if not path.exists():
            raise TableNotFoundError(name)
        # keep_default_na=False: blank cells stay "" rather than NaN
        return pd.read_csv(path, dtype=object, keep_default_na=False)

    def write_table(self, name: str, frame: pd.DataFrame) -> None:
        _atomic_replace(
            self._path(name),
            lambda tmp: frame.to_csv(tmp, index=False),
            suffix=".csv",
        )


class ExcelWorkbookStore:

    """One sheet per table inside a single .xlsx workbook (openpyxl engine)."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, pd.DataFrame]:
        if not self.path.exists():
            return {}
        return pd.read_excel(self.path, sheet_name=None, dtype=object, engine="openpyxl")

    def read_table(self, name: str) -> pd.DataFrame:
        sheets = self._read_all()
        if name not in sheets:
            raise TableNotFoundError(name)
        return sheets[name]

    def write_table(self, name: str, frame: pd.DataFrame) -> None:
        sheets = self._read_all()
        sheets[name] = frame

        def _write(tmp: Path) -> None:
            with pd.ExcelWriter(tmp, engine="openpyxl") as writer:
                for sheet_name, sheet_frame in sheets.items():
                    sheet_frame.to_excel(writer, sheet_name=sheet_name, index=False)

        _atomic_replace(self.path, _write, suffix=".xlsx")


def open_store(path: Path | str) -> TableStore:
    """Workbook store for .xlsx/.xlsm paths, CSV directory store otherwise."""
    path = Path(path)
    if path.suffix.lower() in {".xlsx", ".xlsm"}:
        return ExcelWorkbookStore(path)
    if path.suffix:
        raise ValueError(f"Unsupported storage path: {path}. Expected an .xlsx file or a directory.")
    return CsvDirectoryStore(path)


def _read_or_empty(store: TableStore, name: str) -> pd.DataFrame:
    try:
        return store.read_table(name)
    except Exception as exc:  # any read failure degrades to an empty input
        warnings.warn(
            f"Could not read sheet {name!r} ({exc!r}); continuing with no rows.",
            stacklevel=2,
        )
        return pd.DataFrame()


def load_all_inputs(
    store: TableStore,
    sheets: SheetNames = SHEET_NAMES,
) -> dict[str, pd.DataFrame]:
    """
    Read attendance, payments, rules and discounts concurrently.

    The reads are independent, so they run in a small thread pool; the call
    returns only once all four have finished.
    """
    names = {
        "attendance": sheets.attendance,
        "payments": sheets.payments,
        "rules": sheets.rules,
        "discounts": sheets.discounts,
    }
    with ThreadPoolExecutor(max_workers=len(names)) as pool:
        futures = {key: pool.submit(_read_or_empty, store, name) for key, name in names.items()}
        return {key: future.result() for key, future in futures.items()}


def load_ledger(store: TableStore, sheet_name: str = SHEET_NAMES.master) -> pd.DataFrame:
    """Read the persisted ledger sheet; an absent or unreadable ledger means starting fresh."""
    try:
        return store.read_table(sheet_name)
    except TableNotFoundError:
        return pd.DataFrame()
    except Exception as exc:
        warnings.warn(
            f"Could not read ledger {sheet_name!r} ({exc!r}); starting fresh.",
            stacklevel=2,
        )
        return pd.DataFrame()
