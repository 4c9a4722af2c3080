# Docstring for attendance_recon/engines/reconcile_attendance module
"""
reconcile_attendance.py

Reconciliation engine for class attendance vs. payments.

This module turns the cleaned attendance export, payments export, pricing
rules and discount table into the master ledger: one row per attendance
record (keyed by its unique key) carrying the matched payment, the resolved
pricing rule, any discount, the session price and the four revenue-split
amounts.

Run phases
----------
1) Loading
   - Read attendance, payments, rules and discounts concurrently
     (`load_data.load_all_inputs`); unreadable sheets become empty inputs.
   - Clean the rules; when the sheet has neither alias column, write the
     backfilled table once. A failed backfill write only warns.
2) Filtering
   - Restrict attendance (event date) and payments (payment date) to the
     inclusive window in `RunConfig.date_filter`.
3) Matching / Computing
   - Load the persisted ledger (or start empty with clear_existing).
   - Each attendance record whose key is not yet in the ledger (every
     record when force_reverify) is matched to a payment, a rule and a
     discount, and priced (`build_master_row`).
4) Upserting
   - `merge_ledger` keyed upsert; rows outside the window stay untouched.
   - Invoice-level discounts found in the filtered payments are applied to
     every ledger row with that invoice (`discounts.apply_invoice_discounts`).
5) Persisted
   - The whole ledger is written back when it differs from what was loaded,
     or when force_reverify / clear_existing is set.

Any failure inside a run is raised as `ReconciliationError` chained to its
cause. Re-running with force_reverify on the same inputs reproduces the same
ledger because every step is a pure function of the loaded tables.

Ledger operations
-----------------
- merge_ledger(existing, new) -> pd.DataFrame
- summarize_ledger(ledger, date_filter=None, new_records_added=0) -> LedgerSummary
- filter_unverified(ledger, date_filter=None) -> pd.DataFrame
- set_verification_status(ledger, unique_key, status) -> pd.DataFrame
- manual_verify(ledger, unique_key, invoice_number) -> pd.DataFrame
- manual_verify_row(store, unique_key, invoice_number) -> pd.DataFrame
- clear_ledger(store) -> None

Public API
----------
- ReconciliationError
- LedgerSummary, ReconciliationResult
- build_master_row(attendance, payments, rules, discounts) -> MasterRow
- reconcile_records(attendance, payments, rules, discounts, existing_keys=(),
  force_reverify=False) -> tuple[list[MasterRow], list[str]]
- run_reconciliation(store, run_config=None, sheets=SHEET_NAMES) -> ReconciliationResult
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import pandas as pd

from ..cleaning.clean_attendance import attendance_records, clean_attendance
from ..cleaning.clean_discounts import clean_discounts, discount_records
from ..cleaning.clean_ledger import coerce_ledger_frame, empty_ledger, ledger_from_sheet_frame
from ..cleaning.clean_payments import clean_payments, payment_records
from ..cleaning.clean_rules import clean_rules, pricing_rules, rules_backfill_frame
from ..config import (
    MASTER_COLUMNS,
    SHEET_NAMES,
    SPLIT_AMOUNT_COLUMNS,
    VERIFICATION_STATUS,
    RunConfig,
    SheetNames,
)
from ..core.models import AttendanceRecord, Discount, MasterRow, PaymentRecord, PricingRule
from ..core.normalizers import (
    apply_date_filter,
    build_unique_key,
    normalize_customer_name,
    round2,
    to_text,
    to_timestamp_series,
)
from ..core.validators import normalize_date_filter_config
from ..load_data import TableStore, load_all_inputs, load_ledger
from ..outputs.export_utils import ledger_to_sheet_frame
from .discounts import apply_invoice_discounts, build_invoice_discounts, find_applicable_discount
from .payment_matcher import find_matching_payment
from .revenue import calculate_amounts, calculate_discounted_session_price, split_percentages
from .rule_resolver import classify_session_type, find_matching_rule


class ReconciliationError(RuntimeError):
    """A reconciliation run failed; the cause is chained."""


SUMMARY_TOTAL_COLUMNS = [
    "amount",
    "session_price",
    *SPLIT_AMOUNT_COLUMNS.values(),
]


@dataclass(frozen=True)
class LedgerSummary:
    total_records: int
    verified_count: int
    unverified_count: int
    verification_rate: float
    new_records_added: int = 0
    totals: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "total_records": self.total_records,
            "verified_count": self.verified_count,
            "unverified_count": self.unverified_count,
            "verification_rate": round2(self.verification_rate),
            "new_records_added": self.new_records_added,
            **{f"total_{name}": value for name, value in self.totals.items()},
        }


@dataclass(frozen=True)
class ReconciliationResult:
    ledger: pd.DataFrame
    summary: LedgerSummary
    new_keys: list[str]
    persisted: bool = False


# --- Row construction -------------------------------------------------------------------


def build_master_row(
    attendance: AttendanceRecord,
    payments: Sequence[PaymentRecord],
    rules: Sequence[PricingRule],
    discounts: Sequence[Discount],
) -> MasterRow:
    """
    Reconcile a single attendance record.

    Unmatched records are still priced from their rule (or the category
    defaults) so they show up in the ledger as "Not Verified" with amount 0.
    """
    session_type = classify_session_type(attendance.offering_type)
    payment = find_matching_payment(attendance, payments, rules)
    rule = find_matching_rule(attendance.membership_name, session_type, rules)
    discount = find_applicable_discount(payment, discounts)

    amount = payment.amount if payment is not None else 0.0
    session_price = round2(rule.unit_price or 0.0) if rule is not None else 0.0
    package_price = round2(rule.price) if rule is not None else 0.0

    discounted_price = round2(calculate_discounted_session_price(amount, rule, discount))
    amounts = calculate_amounts(discounted_price, rule, session_type)
    splits = split_percentages(rule, session_type)

    return MasterRow(
        customer_name=attendance.customer_name,
        event_starts_at=attendance.event_starts_at,
        membership_name=attendance.membership_name,
        instructors=attendance.instructors,
        status=attendance.status,
        discount=discount.display_name if discount is not None else "",
        discount_percentage=float(discount.applicable_percentage) if discount is not None else 0.0,
        verification_status=(
            VERIFICATION_STATUS.verified if payment is not None else VERIFICATION_STATUS.not_verified
        ),
        invoice_number=payment.invoice_number if payment is not None else "",
        amount=round2(amount),
        payment_date=payment.payment_date if payment is not None else "",
        package_price=package_price,
        session_price=session_price,
        discounted_session_price=discounted_price,
        coach_amount=amounts["coach"],
        bgm_amount=amounts["bgm"],
        management_amount=amounts["management"],
        mfc_amount=amounts["mfc"],
        session_type=session_type,
        coach_percentage=float(splits.coach),
        bgm_percentage=float(splits.bgm),
        management_percentage=float(splits.management),
        mfc_percentage=float(splits.mfc),
        unique_key=build_unique_key(
            attendance.event_starts_at,
            attendance.customer_name,
            attendance.membership_name,
            attendance.instructors,
        ),
    )


def _payments_by_customer(payments: Iterable[PaymentRecord]) -> dict[str, list[PaymentRecord]]:
    index: dict[str, list[PaymentRecord]] = {}
    for payment in payments:
        index.setdefault(normalize_customer_name(payment.customer_name), []).append(payment)
    return index


def reconcile_records(
    attendance: Sequence[AttendanceRecord],
    payments: Sequence[PaymentRecord],
    rules: Sequence[PricingRule],
    discounts: Sequence[Discount],
    existing_keys: Iterable[str] = (),
    force_reverify: bool = False,
) -> tuple[list[MasterRow], list[str]]:
    """
    Build ledger rows for the attendance records that need (re)processing.

    Returns:
        (rows, new_keys) where new_keys lists, in first-seen order, the keys
        that were not already present in existing_keys.
    """
    known = set(existing_keys)
    payment_index = _payments_by_customer(payments)

    rows: list[MasterRow] = []
    new_keys: list[str] = []
    seen_new: set[str] = set()
    for record in attendance:
        key = build_unique_key(
            record.event_starts_at,
            record.customer_name,
            record.membership_name,
            record.instructors,
        )
        if key in known and not force_reverify:
            continue
        candidates = payment_index.get(normalize_customer_name(record.customer_name), [])
        rows.append(build_master_row(record, candidates, rules, discounts))
        if key not in known and key not in seen_new:
            seen_new.add(key)
            new_keys.append(key)
    return rows, new_keys


def rows_to_frame(rows: Sequence[MasterRow]) -> pd.DataFrame:
    return coerce_ledger_frame(pd.DataFrame([row.to_dict() for row in rows], columns=MASTER_COLUMNS))


# --- Ledger operations ----------------------------------------------------------------------


def merge_ledger(existing: pd.DataFrame, new: pd.DataFrame) -> pd.DataFrame:
    """
    Keyed upsert of `new` into `existing`, returned as a new frame.

    Existing rows keep their order and replaced rows keep their position;
    unseen keys are appended in order. When a key appears more than once the
    last occurrence wins.
    """
    merged: dict[str, dict] = {}
    for frame in (existing, new):
        for record in coerce_ledger_frame(frame).to_dict("records"):
            merged[record["unique_key"]] = record
    if not merged:
        return empty_ledger()
    return coerce_ledger_frame(pd.DataFrame(list(merged.values()), columns=MASTER_COLUMNS))


def _within_window(ledger: pd.DataFrame, date_filter) -> pd.DataFrame:
    date_start, date_end = normalize_date_filter_config(date_filter)
    if date_start is None and date_end is None:
        return ledger
    df = ledger.assign(_event_ts=to_timestamp_series(ledger["event_starts_at"]))
    return apply_date_filter(df, "_event_ts", date_filter).drop(columns="_event_ts")


def summarize_ledger(
    ledger: pd.DataFrame,
    date_filter=None,
    new_records_added: int = 0,
) -> LedgerSummary:
    df = _within_window(coerce_ledger_frame(ledger), date_filter)

    total = int(len(df))
    verified = int(df["verification_status"].eq(VERIFICATION_STATUS.verified).sum())
    rate = verified / total * 100 if total else 0.0
    totals = {col: round2(df[col].sum()) for col in SUMMARY_TOTAL_COLUMNS}

    return LedgerSummary(
        total_records=total,
        verified_count=verified,
        unverified_count=total - verified,
        verification_rate=rate,
        new_records_added=int(new_records_added),
        totals=totals,
    )


def filter_unverified(ledger: pd.DataFrame, date_filter=None) -> pd.DataFrame:
    """Rows still marked "Not Verified", for manual review."""
    df = _within_window(coerce_ledger_frame(ledger), date_filter)
    return df[df["verification_status"].eq(VERIFICATION_STATUS.not_verified)].reset_index(drop=True)


def _key_mask(ledger: pd.DataFrame, unique_key: str) -> pd.Series:
    mask = ledger["unique_key"].eq(unique_key)
    if not mask.any():
        raise ValueError(f"Unknown unique key: {unique_key!r}")
    return mask


def set_verification_status(ledger: pd.DataFrame, unique_key: str, status: str) -> pd.DataFrame:
    allowed = (VERIFICATION_STATUS.verified, VERIFICATION_STATUS.not_verified)
    if status not in allowed:
        raise ValueError(f"Invalid verification status: {status!r}. Expected one of {allowed}.")
    df = coerce_ledger_frame(ledger)
    df.loc[_key_mask(df, unique_key), "verification_status"] = status
    return df


def manual_verify(ledger: pd.DataFrame, unique_key: str, invoice_number: object) -> pd.DataFrame:
    """Mark one row Verified against an invoice the matcher did not find."""
    invoice = to_text(invoice_number)
    if not invoice:
        raise ValueError("Invoice number is required for manual verification.")
    df = set_verification_status(ledger, unique_key, VERIFICATION_STATUS.verified)
    df.loc[df["unique_key"].eq(unique_key), "invoice_number"] = invoice
    return df


def manual_verify_row(
    store: TableStore,
    unique_key: str,
    invoice_number: object,
    sheets: SheetNames = SHEET_NAMES,
) -> pd.DataFrame:
    ledger = ledger_from_sheet_frame(load_ledger(store, sheets.master))
    updated = manual_verify(ledger, unique_key, invoice_number)
    store.write_table(sheets.master, ledger_to_sheet_frame(updated))
    return updated


def clear_ledger(store: TableStore, sheets: SheetNames = SHEET_NAMES) -> None:
    store.write_table(sheets.master, ledger_to_sheet_frame(empty_ledger()))


# --- Run ------------------------------------------------------------------------------------------


def _persist_rules_backfill(store: TableStore, sheet_name: str, frame: pd.DataFrame) -> None:
    try:
        store.write_table(sheet_name, frame)
    except Exception as exc:  # the run continues on the in-memory aliases
        warnings.warn(
            f"Could not write alias backfill to {sheet_name!r} ({exc!r}); using in-memory aliases.",
            stacklevel=3,
        )


def run_reconciliation(
    store: TableStore,
    run_config: RunConfig | None = None,
    sheets: SheetNames = SHEET_NAMES,
) -> ReconciliationResult:
    """
    Run one reconciliation against a table store.

    Args:
        store:
            Source of the input sheets and destination of the master ledger.
        run_config:
            Date window and force_reverify / clear_existing flags.
        sheets:
            Table names to read and write.

    Returns:
        ReconciliationResult with the merged ledger, its summary, the keys
        added by this run and whether the ledger was written.

    Raises:
        ValueError: the date window is invalid.
        ReconciliationError: anything failed after the run started.
    """
    cfg = run_config or RunConfig()
    normalize_date_filter_config(cfg.date_filter)

    try:
        raw = load_all_inputs(store, sheets)

        rules_df, needs_backfill = clean_rules(raw["rules"])
        if needs_backfill:
            _persist_rules_backfill(store, sheets.rules, rules_backfill_frame(raw["rules"], rules_df))

        attendance_df = apply_date_filter(clean_attendance(raw["attendance"]), "event_ts", cfg.date_filter)
        payments_df = apply_date_filter(clean_payments(raw["payments"]), "payment_ts", cfg.date_filter)

        attendance = attendance_records(attendance_df)
        payments = payment_records(payments_df)
        rules = pricing_rules(rules_df)
        discounts = discount_records(clean_discounts(raw["discounts"]))

        if cfg.clear_existing:
            existing = empty_ledger()
        else:
            existing = ledger_from_sheet_frame(load_ledger(store, sheets.master))

        rows, new_keys = reconcile_records(
            attendance,
            payments,
            rules,
            discounts,
            existing_keys=existing["unique_key"],
            force_reverify=cfg.force_reverify,
        )
        merged = merge_ledger(existing, rows_to_frame(rows))
        merged = apply_invoice_discounts(merged, build_invoice_discounts(payments, discounts))

        persist = cfg.force_reverify or cfg.clear_existing or not merged.equals(existing)
        if persist:
            store.write_table(sheets.master, ledger_to_sheet_frame(merged))

        summary = summarize_ledger(merged, new_records_added=len(new_keys))
    except Exception as exc:
        raise ReconciliationError(f"Reconciliation failed: {exc}") from exc

    return ReconciliationResult(ledger=merged, summary=summary, new_keys=new_keys, persisted=persist)
