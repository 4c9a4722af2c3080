import pandas as pd
import pytest

from attendance_recon.cleaning.clean_ledger import ledger_from_sheet_frame
from attendance_recon.config import SHEET_NAMES, DateFilterConfig, RunConfig
from attendance_recon.engines.reconcile_attendance import (
    ReconciliationError,
    clear_ledger,
    manual_verify_row,
    run_reconciliation,
)
from attendance_recon.generate_sample_data import generate_sample_frames
from attendance_recon.load_data import InMemoryTableStore, TableNotFoundError


def _attendance_frame(*events: str) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "Customer Name": ["Kaia Attard"] * len(events),
            "Event Starts At": list(events),
            "Membership Name": ["Junior Single - Pay As You Go"] * len(events),
            "Offering Type Name": ["KIDS COMBAT"] * len(events),
            "Instructors": ["Sam"] * len(events),
            "Status": ["Checked In"] * len(events),
        }
    )


def _payments_frame(rows: list[tuple[str, str, float, str]]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"Date": date, "Customer": "Kaia Attard", "Memo": memo, "Amount": amount, "Invoice": invoice}
            for date, memo, amount, invoice in rows
        ]
    )


RULES_FRAME = pd.DataFrame(
    {
        "package_name": ["Junior Single - Pay As You Go"],
        "session_type": ["group"],
        "price": [15],
        "unit_price": [15],
        "coach_percentage": [43.5],
        "bgm_percentage": [30],
        "management_percentage": [8.5],
        "mfc_percentage": [18],
    }
)

DISCOUNTS_FRAME = pd.DataFrame(
    {
        "discount_code": ["discount"],
        "applicable_percentage": [50],
        "coach_payment_type": ["partial"],
        "active": ["TRUE"],
    }
)


def _store(attendance: pd.DataFrame, payments: pd.DataFrame, **extra) -> InMemoryTableStore:
    tables = {
        SHEET_NAMES.attendance: attendance,
        SHEET_NAMES.payments: payments,
        SHEET_NAMES.rules: RULES_FRAME,
        SHEET_NAMES.discounts: DISCOUNTS_FRAME,
    }
    tables.update(extra)
    return InMemoryTableStore(tables)


class FailingWriteStore(InMemoryTableStore):
    def __init__(self, tables, failing: str) -> None:
        super().__init__(tables)
        self.failing = failing

    def write_table(self, name: str, frame: pd.DataFrame) -> None:
        if name == self.failing:
            raise OSError(f"cannot write {name}")
        super().write_table(name, frame)


class FailingReadStore(InMemoryTableStore):
    def __init__(self, tables, failing: str) -> None:
        super().__init__(tables)
        self.failing = failing

    def read_table(self, name: str) -> pd.DataFrame:
        if name == self.failing:
            raise OSError(f"cannot read {name}")
        return super().read_table(name)


def test_verified_scenario_persists_ledger() -> None:
    store = _store(
        _attendance_frame("2024-03-01T10:00:00Z"),
        _payments_frame([("2024-03-01", "Junior Single - Pay as You Go", 15, "1001")]),
    )

    result = run_reconciliation(store)

    row = result.ledger.iloc[0]
    assert row["verification_status"] == "Verified"
    assert row["session_price"] == 15.0
    assert (row["coach_amount"], row["bgm_amount"], row["management_amount"], row["mfc_amount"]) == (
        6.53,
        4.5,
        1.28,
        2.7,
    )
    assert result.persisted is True
    assert result.new_keys == [row["unique_key"]]
    assert result.summary.verification_rate == 100.0

    persisted = ledger_from_sheet_frame(store.read_table(SHEET_NAMES.master))
    pd.testing.assert_frame_equal(persisted, result.ledger)


def test_discount_scenario_keeps_session_price() -> None:
    store = _store(
        _attendance_frame("2024-03-01T10:00:00Z"),
        _payments_frame([("2024-03-01", "Junior Single - Pay as You Go discount", 7.5, "1002")]),
    )

    row = run_reconciliation(store).ledger.iloc[0]

    assert row["discounted_session_price"] == 7.5
    assert row["coach_amount"] == 3.26
    assert row["session_price"] == 15.0
    assert row["package_price"] == 15.0
    assert row["discount_percentage"] == 50.0


def test_unpaid_attendance_is_not_verified() -> None:
    store = _store(
        _attendance_frame("2024-03-01T10:00:00Z"),
        _payments_frame([("2024-03-20", "Gift card", 50, "1003")]),
    )

    row = run_reconciliation(store).ledger.iloc[0]

    assert row["verification_status"] == "Not Verified"
    assert row["amount"] == 0.0


def test_rules_backfill_is_written_once() -> None:
    store = _store(_attendance_frame("2024-03-01T10:00:00Z"), _payments_frame([]))

    run_reconciliation(store)

    rules = store.read_table(SHEET_NAMES.rules)
    assert rules["attendance_alias"].tolist() == ["Junior Single - Pay As You Go"]
    assert rules["payment_memo_alias"].tolist() == ["Junior Single - Pay As You Go"]


def test_rules_backfill_write_failure_only_warns() -> None:
    tables = {
        SHEET_NAMES.attendance: _attendance_frame("2024-03-01T10:00:00Z"),
        SHEET_NAMES.payments: _payments_frame([("2024-03-01", "Junior Single - Pay as You Go", 15, "1")]),
        SHEET_NAMES.rules: RULES_FRAME,
        SHEET_NAMES.discounts: DISCOUNTS_FRAME,
    }
    store = FailingWriteStore(tables, failing=SHEET_NAMES.rules)

    with pytest.warns(UserWarning, match="alias backfill"):
        result = run_reconciliation(store)

    assert result.ledger.iloc[0]["verification_status"] == "Verified"
    assert "attendance_alias" not in store.read_table(SHEET_NAMES.rules).columns


def test_ledger_write_failure_raises_reconciliation_error() -> None:
    tables = {
        SHEET_NAMES.attendance: _attendance_frame("2024-03-01T10:00:00Z"),
        SHEET_NAMES.payments: _payments_frame([]),
        SHEET_NAMES.rules: RULES_FRAME,
        SHEET_NAMES.discounts: DISCOUNTS_FRAME,
    }
    store = FailingWriteStore(tables, failing=SHEET_NAMES.master)

    with pytest.raises(ReconciliationError, match="Reconciliation failed") as excinfo:
        run_reconciliation(store)

    assert isinstance(excinfo.value.__cause__, OSError)
    with pytest.raises(TableNotFoundError):
        store.read_table(SHEET_NAMES.master)


def test_unreadable_payments_sheet_degrades_to_unverified() -> None:
    tables = {
        SHEET_NAMES.attendance: _attendance_frame("2024-03-01T10:00:00Z"),
        SHEET_NAMES.payments: _payments_frame([("2024-03-01", "Junior Single - Pay as You Go", 15, "1")]),
        SHEET_NAMES.rules: RULES_FRAME,
        SHEET_NAMES.discounts: DISCOUNTS_FRAME,
    }
    store = FailingReadStore(tables, failing=SHEET_NAMES.payments)

    with pytest.warns(UserWarning, match="Could not read sheet"):
        result = run_reconciliation(store)

    assert result.ledger.shape[0] == 1
    assert result.ledger.iloc[0]["verification_status"] == "Not Verified"


def test_missing_input_sheets_give_empty_ledger() -> None:
    with pytest.warns(UserWarning):
        result = run_reconciliation(InMemoryTableStore())

    assert result.ledger.empty
    assert result.summary.total_records == 0
    assert result.persisted is False


def test_invalid_date_window_raises_value_error() -> None:
    store = _store(_attendance_frame("2024-03-01T10:00:00Z"), _payments_frame([]))
    bad = RunConfig(date_filter=DateFilterConfig(date_start="2024-04-01", date_end="2024-03-01"))
    with pytest.raises(ValueError, match="Invalid date range"):
        run_reconciliation(store, bad)


def test_rerun_without_force_skips_existing_and_does_not_write() -> None:
    store = _store(
        _attendance_frame("2024-03-01T10:00:00Z"),
        _payments_frame([("2024-03-01", "Junior Single - Pay as You Go", 15, "1001")]),
    )
    first = run_reconciliation(store)

    store.write_table(
        SHEET_NAMES.payments,
        _payments_frame([("2024-03-01", "Junior Single - Pay as You Go", 99, "9999")]),
    )
    second = run_reconciliation(store)

    assert second.new_keys == []
    assert second.persisted is False
    pd.testing.assert_frame_equal(second.ledger, first.ledger)

    forced = run_reconciliation(store, RunConfig(force_reverify=True))
    assert forced.persisted is True
    assert forced.ledger.iloc[0]["invoice_number"] == "9999"
    assert forced.ledger.iloc[0]["amount"] == 99.0


def test_rows_outside_window_are_preserved() -> None:
    store = _store(
        _attendance_frame("2024-03-01T10:00:00Z", "2024-04-01T10:00:00Z", "not a date"),
        _payments_frame(
            [
                ("2024-03-01", "Junior Single - Pay as You Go", 15, "1001"),
                ("2024-04-01", "Junior Single - Pay as You Go", 15, "1002"),
            ]
        ),
    )
    march = RunConfig(date_filter=DateFilterConfig("2024-03-01", "2024-03-31"), force_reverify=True)
    april = RunConfig(date_filter=DateFilterConfig("2024-04-01", "2024-04-30"), force_reverify=True)

    first = run_reconciliation(store, march)
    assert first.ledger.shape[0] == 1
    march_row = first.ledger.iloc[0]

    second = run_reconciliation(store, april)

    assert second.ledger["invoice_number"].tolist() == ["1001", "1002"]
    pd.testing.assert_series_equal(second.ledger.iloc[0], march_row)


def test_clear_existing_drops_stale_rows() -> None:
    store = _store(_attendance_frame("2024-03-01T10:00:00Z"), _payments_frame([]))
    run_reconciliation(store)
    stale = store.read_table(SHEET_NAMES.master)
    stale.loc[0, "UniqueKey"] = "stale"
    store.write_table(SHEET_NAMES.master, stale)

    kept = run_reconciliation(store)
    assert kept.ledger.shape[0] == 2

    cleared = run_reconciliation(store, RunConfig(clear_existing=True))
    assert cleared.ledger.shape[0] == 1
    assert "stale" not in cleared.ledger["unique_key"].tolist()
    assert ledger_from_sheet_frame(store.read_table(SHEET_NAMES.master)).shape[0] == 1


def test_manual_verify_row_and_clear_ledger() -> None:
    store = _store(_attendance_frame("2024-03-01T10:00:00Z"), _payments_frame([]))
    key = run_reconciliation(store).new_keys[0]

    updated = manual_verify_row(store, key, "INV-77")

    persisted = ledger_from_sheet_frame(store.read_table(SHEET_NAMES.master))
    assert persisted.iloc[0]["verification_status"] == "Verified"
    assert persisted.iloc[0]["invoice_number"] == "INV-77"
    pd.testing.assert_frame_equal(persisted, updated)

    clear_ledger(store)
    assert ledger_from_sheet_frame(store.read_table(SHEET_NAMES.master)).empty


@pytest.mark.parametrize("seed", [1, 7, 2024, 99991])
def test_forced_rerun_is_a_fixed_point(seed: int) -> None:
    store = InMemoryTableStore(generate_sample_frames(seed=seed, n_customers=12))

    with pytest.warns(UserWarning):
        first = run_reconciliation(store, RunConfig(force_reverify=True))
    with pytest.warns(UserWarning):
        second = run_reconciliation(store, RunConfig(force_reverify=True))

    assert first.ledger.shape[0] > 0
    assert second.new_keys == []
    pd.testing.assert_frame_equal(first.ledger, second.ledger)
    pd.testing.assert_frame_equal(
        ledger_from_sheet_frame(store.read_table(SHEET_NAMES.master)),
        second.ledger,
    )


@pytest.mark.parametrize("seed", [3, 11])
def test_package_and_session_prices_never_discounted(seed: int) -> None:
    frames = generate_sample_frames(seed=seed, n_customers=20)
    store = InMemoryTableStore(frames)

    with pytest.warns(UserWarning):
        ledger = run_reconciliation(store).ledger

    rules = frames[SHEET_NAMES.rules].set_index("package_name")["unit_price"]
    discounted = ledger[(ledger["discount"] != "") & (ledger["session_price"] > 0)]
    for _, row in discounted.iterrows():
        assert row["session_price"] >= row["discounted_session_price"]
    assert set(ledger["session_price"]) <= {0.0, *[float(v) for v in rules if v != ""]}
