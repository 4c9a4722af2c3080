from pathlib import Path

import pandas as pd
import pytest

from attendance_recon.config import SHEET_NAMES
from attendance_recon.generate_sample_data import generate_sample_frames
from attendance_recon.load_data import CsvDirectoryStore
from attendance_recon import run_reconciliation as cli


def test_sample_frames_are_deterministic() -> None:
    first = generate_sample_frames(seed=42, n_customers=8)
    second = generate_sample_frames(seed=42, n_customers=8)

    assert set(first) == {
        SHEET_NAMES.attendance,
        SHEET_NAMES.payments,
        SHEET_NAMES.rules,
        SHEET_NAMES.discounts,
    }
    for name in first:
        pd.testing.assert_frame_equal(first[name], second[name])


def test_sample_frames_use_raw_export_headers() -> None:
    frames = generate_sample_frames(seed=42, n_customers=8)

    assert "Customer Name" in frames[SHEET_NAMES.attendance].columns
    assert "Customer" in frames[SHEET_NAMES.payments].columns
    assert "not a date" in frames[SHEET_NAMES.attendance]["Event Starts At"].tolist()
    assert frames[SHEET_NAMES.attendance]["Customer Name"].nunique() == 8


def test_cli_runs_and_exports(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    tables = tmp_path / "tables"
    store = CsvDirectoryStore(tables)
    for name, frame in generate_sample_frames(seed=13, n_customers=4).items():
        store.write_table(name, frame)
    csv_path = tmp_path / "exports" / "ledger.csv"
    xlsx_path = tmp_path / "exports" / "ledger.xlsx"

    with pytest.warns(UserWarning):
        cli.main(
            [
                "--source",
                str(tables),
                "--force",
                "--export-csv",
                str(csv_path),
                "--export-excel",
                str(xlsx_path),
                "--save-figures",
                str(tmp_path / "figures"),
            ]
        )

    out = capsys.readouterr().out
    assert "total_records:" in out
    assert "Ledger written: yes" in out
    assert csv_path.exists()
    assert xlsx_path.exists()
    assert (tables / f"{SHEET_NAMES.master}.csv").exists()
    assert (tmp_path / "figures" / "monthly_split_totals.png").exists()
    assert "Figure written to:" in out


def test_cli_rejects_inverted_window(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Invalid date range"):
        cli.main(["--source", str(tmp_path), "--from", "2024-05-01", "--to", "2024-04-01"])
