"""
verification_visualization.py

Helpers for summarizing and visualizing the master ledger.
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

import matplotlib.pyplot as plt
import pandas as pd

from .. import config
from ..config import SPLIT_AMOUNT_COLUMNS, VERIFICATION_STATUS
from ..core.normalizers import to_timestamp_series
from ..core.validators import validate_required_columns


STATUS_GROUPS = [
    ("verified", VERIFICATION_STATUS.verified),
    ("not_verified", VERIFICATION_STATUS.not_verified),
]
SPLIT_LABELS = {
    "coach_amount": "Coach",
    "bgm_amount": "BGM",
    "management_amount": "Management",
    "mfc_amount": "MFC",
}
SPLIT_COLORS = {
    "coach_amount": "#4C78A8",
    "bgm_amount": "#F58518",
    "management_amount": "#54A24B",
    "mfc_amount": "#B279A2",
}


def build_verification_kpi_summary(df: pd.DataFrame) -> pd.DataFrame:
    """
    Compute counts and percentages per verification status.

    Required columns:
      - verification_status
    """

    validate_required_columns(df, ["verification_status"])

    columns = ["status_group", "count", "percent"]
    if df.empty:
        return pd.DataFrame(columns=columns)

    total = int(df.shape[0])
    rows = []
    for group_label, status_value in STATUS_GROUPS:
        count = int((df["verification_status"] == status_value).sum())
        rows.append(
            {
                "status_group": group_label,
                "count": count,
                "percent": count / total if total else 0.0,
            }
        )

    return pd.DataFrame(rows, columns=columns)


def plot_verification_kpi_summary(
    summary_df: pd.DataFrame,
) -> Tuple[plt.Figure, plt.Axes]:
    """
    Plot verified vs not verified sessions as percent of ledger rows.
    """

    validate_required_columns(summary_df, ["status_group", "count", "percent"])

    fig, ax = plt.subplots(figsize=(8, 3))
    if summary_df.empty:
        ax.text(0.5, 0.5, "No data available", ha="center", va="center")
        ax.set_axis_off()
        return fig, ax

    order = [group_label for group_label, _ in STATUS_GROUPS]
    data = summary_df.set_index("status_group").reindex(order).fillna(0)
    counts = data["count"].astype(int)
    percents = data["percent"] * 100

    ax.barh(order, percents, color="#72B7B2")
    ax.set_xlabel("Percent of Sessions")
    ax.set_title("Payment Verification Summary")

    max_pct = float(percents.max() if len(percents) else 0)
    ax.set_xlim(0, max(10.0, max_pct * 1.15))

    for idx, (pct, count) in enumerate(zip(percents, counts)):
        ax.text(pct + 0.5, idx, f"{pct:.1f}% ({count})", va="center")

    return fig, ax


def build_monthly_split_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per event month: sessions, verified sessions, verification rate and the
    four split totals. Rows without a parseable event date are left out.

    Required columns:
      - event_starts_at
      - verification_status
      - coach_amount, bgm_amount, management_amount, mfc_amount
    """

    amount_cols = list(SPLIT_AMOUNT_COLUMNS.values())
    validate_required_columns(df, ["event_starts_at", "verification_status", *amount_cols])

    columns = ["month", "sessions", "verified_sessions", "verification_rate", *amount_cols]
    if df.empty:
        return pd.DataFrame(columns=columns)

    work = df.copy()
    work["event_ts"] = to_timestamp_series(work["event_starts_at"])
    work = work[work["event_ts"].notna()]
    if work.empty:
        return pd.DataFrame(columns=columns)

    work["month"] = work["event_ts"].dt.to_period("M").astype(str)
    work["is_verified"] = work["verification_status"].eq(VERIFICATION_STATUS.verified)
    for col in amount_cols:
        work[col] = pd.to_numeric(work[col], errors="coerce").fillna(0.0)

    grouped = work.groupby("month", sort=True)
    out = grouped.agg(
        sessions=("is_verified", "size"),
        verified_sessions=("is_verified", "sum"),
        **{col: (col, "sum") for col in amount_cols},
    ).reset_index()
    out["verified_sessions"] = out["verified_sessions"].astype(int)
    out["verification_rate"] = out["verified_sessions"] / out["sessions"]
    for col in amount_cols:
        out[col] = out[col].round(2)

    return out[columns]


def plot_monthly_split_totals(
    metrics_df: pd.DataFrame,
) -> Tuple[plt.Figure, plt.Axes]:
    """
    Stacked bars of the monthly payout per split.
    """

    amount_cols = list(SPLIT_AMOUNT_COLUMNS.values())
    validate_required_columns(metrics_df, ["month", *amount_cols])

    fig, ax = plt.subplots(figsize=(10, 5))
    if metrics_df.empty:
        ax.text(0.5, 0.5, "No data available", ha="center", va="center")
        ax.set_axis_off()
        return fig, ax

    months = metrics_df["month"].astype(str).tolist()
    bottom = pd.Series(0.0, index=metrics_df.index)
    for col in amount_cols:
        values = metrics_df[col].astype(float)
        ax.bar(months, values, bottom=bottom, color=SPLIT_COLORS[col], label=SPLIT_LABELS[col])
        bottom = bottom + values

    ax.set_ylabel("Amount")
    ax.set_title("Monthly Revenue Split")
    ax.legend(loc="upper left")
    ax.tick_params(axis="x", rotation=45)

    return fig, ax


def save_ledger_figures(
    ledger: pd.DataFrame,
    out_dir: Path | str | None = None,
) -> list[Path]:
    """
    Render the KPI and monthly split charts for `ledger` as PNG files.

    Files land in `out_dir`, or `config.REPORTS_FIGURES_DIR` when omitted.
    """

    target_dir = Path(out_dir) if out_dir is not None else config.REPORTS_FIGURES_DIR
    target_dir.mkdir(parents=True, exist_ok=True)

    figures = [
        ("verification_kpi_summary.png", plot_verification_kpi_summary(build_verification_kpi_summary(ledger))),
        ("monthly_split_totals.png", plot_monthly_split_totals(build_monthly_split_metrics(ledger))),
    ]

    paths: list[Path] = []
    for filename, (fig, _ax) in figures:
        path = target_dir / filename
        fig.savefig(path, bbox_inches="tight")
        plt.close(fig)
        paths.append(path)
    return paths
