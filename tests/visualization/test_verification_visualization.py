from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from attendance_recon import config
from attendance_recon.visualization.verification_visualization import (
    build_monthly_split_metrics,
    build_verification_kpi_summary,
    plot_monthly_split_totals,
    plot_verification_kpi_summary,
    save_ledger_figures,
)


def _ledger() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "event_starts_at": [
                "2024-03-01T10:00:00Z",
                "2024-03-15T18:00:00Z",
                "2024-04-02T09:00:00Z",
                "not a date",
            ],
            "verification_status": ["Verified", "Not Verified", "Verified", "Verified"],
            "coach_amount": [6.53, 6.53, 40.0, 1.0],
            "bgm_amount": [4.5, 4.5, 7.5, 1.0],
            "management_amount": [1.28, 1.28, 0.0, 1.0],
            "mfc_amount": [2.7, 2.7, 2.5, 1.0],
        }
    )


def test_build_verification_kpi_summary_counts() -> None:
    summary = build_verification_kpi_summary(_ledger()).set_index("status_group")

    assert summary.loc["verified", "count"] == 3
    assert summary.loc["not_verified", "count"] == 1
    assert summary.loc["verified", "percent"] == pytest.approx(3 / 4)


def test_build_verification_kpi_summary_empty() -> None:
    summary = build_verification_kpi_summary(pd.DataFrame(columns=["verification_status"]))

    assert summary.empty is True
    assert list(summary.columns) == ["status_group", "count", "percent"]


def test_build_verification_kpi_summary_missing_columns() -> None:
    with pytest.raises(ValueError, match="Missing required columns"):
        build_verification_kpi_summary(pd.DataFrame({"status": ["Verified"]}))


def test_build_monthly_split_metrics() -> None:
    metrics = build_monthly_split_metrics(_ledger()).set_index("month")

    assert metrics.index.tolist() == ["2024-03", "2024-04"]
    assert metrics.loc["2024-03", "sessions"] == 2
    assert metrics.loc["2024-03", "verified_sessions"] == 1
    assert metrics.loc["2024-03", "verification_rate"] == pytest.approx(0.5)
    assert metrics.loc["2024-03", "coach_amount"] == pytest.approx(13.06)
    assert metrics.loc["2024-04", "mfc_amount"] == pytest.approx(2.5)


def test_build_monthly_split_metrics_missing_columns() -> None:
    with pytest.raises(ValueError, match="Missing required columns: coach_amount"):
        build_monthly_split_metrics(
            pd.DataFrame(
                columns=[
                    "event_starts_at",
                    "verification_status",
                    "bgm_amount",
                    "management_amount",
                    "mfc_amount",
                ]
            )
        )


def test_plots_render_and_handle_empty_input() -> None:
    fig, ax = plot_verification_kpi_summary(build_verification_kpi_summary(_ledger()))
    assert ax.get_title() == "Payment Verification Summary"
    plt.close(fig)

    fig, ax = plot_monthly_split_totals(build_monthly_split_metrics(_ledger()))
    assert len(ax.patches) == 8
    plt.close(fig)

    empty = build_monthly_split_metrics(pd.DataFrame(columns=_ledger().columns))
    fig, ax = plot_monthly_split_totals(empty)
    assert ax.texts[0].get_text() == "No data available"
    plt.close(fig)


def test_save_ledger_figures_defaults_to_reports_figures(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    figures_dir = tmp_path / "reports" / "figures"
    monkeypatch.setattr(config, "REPORTS_FIGURES_DIR", figures_dir)

    paths = save_ledger_figures(_ledger())

    assert [p.name for p in paths] == ["verification_kpi_summary.png", "monthly_split_totals.png"]
    assert all(p.parent == figures_dir for p in paths)
    assert all(p.exists() for p in paths)


def test_save_ledger_figures_explicit_dir(tmp_path: Path) -> None:
    paths = save_ledger_figures(_ledger(), tmp_path / "charts")
    assert all(p.parent == tmp_path / "charts" and p.exists() for p in paths)
