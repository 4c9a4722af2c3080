"""
run_reconciliation.py

Command line entry point for one reconciliation run.

Examples
--------
    python -m attendance_recon.run_reconciliation --source data/sample/studio_sample.xlsx
    python -m attendance_recon.run_reconciliation --source data/tables --from 2024-03-01 \
        --to 2024-03-31 --force --export-csv reports/outputs/ledger_march.csv
"""

from __future__ import annotations

import argparse
from pathlib import Path

from .config import SAMPLE_DIR, SAMPLE_WORKBOOK_NAME, DateFilterConfig, RunConfig


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile class attendance against payments and update the master ledger."
    )
    parser.add_argument(
        "--source",
        type=Path,
        default=SAMPLE_DIR / SAMPLE_WORKBOOK_NAME,
        help="Input/ledger storage: an .xlsx workbook or a directory of CSV tables",
    )
    parser.add_argument("--from", dest="date_start", default=None, help="Inclusive start date (YYYY-MM-DD)")
    parser.add_argument("--to", dest="date_end", default=None, help="Inclusive end date (YYYY-MM-DD)")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Recompute rows already in the ledger and always write it back",
    )
    parser.add_argument(
        "--clear-existing",
        action="store_true",
        help="Ignore the persisted ledger and overwrite it with this run's rows",
    )
    parser.add_argument("--export-csv", type=Path, default=None, help="Also write the ledger as CSV")
    parser.add_argument(
        "--export-excel",
        type=Path,
        nargs="?",
        const="",
        default=None,
        help="Also write the ledger as .xlsx (timestamped under reports/outputs when no path is given)",
    )
    parser.add_argument(
        "--save-figures",
        type=Path,
        nargs="?",
        const="",
        default=None,
        help="Also save the verification charts as PNG (under reports/figures when no directory is given)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:

    """

    Run the pipeline against --source and print the run summary.

    """

    # Imported here so `--help` does not pull in pandas/matplotlib.
    from .engines.reconcile_attendance import run_reconciliation
    from .load_data import open_store
    from .outputs.export_utils import export_ledger_csv, ledger_to_sheet_frame, write_df_excel

    args = _parse_args(argv)
    date_filter = DateFilterConfig(date_start=args.date_start, date_end=args.date_end)
    run_config = RunConfig(
        date_filter=date_filter,
        force_reverify=args.force,
        clear_existing=args.clear_existing,
    )

    result = run_reconciliation(open_store(args.source), run_config)

    for label, value in result.summary.to_dict().items():
        print(f"{label}: {value}")
    print(f"Ledger written: {'yes' if result.persisted else 'no (unchanged)'}")

    if args.export_csv is not None:
        path = export_ledger_csv(result.ledger, args.export_csv, date_filter=date_filter)
        print(f"CSV export written to: {path}")

    if args.export_excel is not None:
        output_path = Path(args.export_excel) if args.export_excel else None
        path = write_df_excel(
            ledger_to_sheet_frame(result.ledger),
            output_path,
            filename_prefix="payment_calc_detail",
            sheet_name="ledger",
        )
        print(f"Excel export written to: {path}")

    if args.save_figures is not None:
        from .visualization.verification_visualization import save_ledger_figures

        out_dir = Path(args.save_figures) if args.save_figures else None
        for path in save_ledger_figures(result.ledger, out_dir):
            print(f"Figure written to: {path}")


if __name__ == "__main__":
    main()
