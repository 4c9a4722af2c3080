"""
models.py

Typed records the matching engines operate on.

Cleaning modules map heterogeneous sheet rows into these structures once, at
ingestion, so engines never deal with alternate header names or raw cell
values. All records are immutable for the duration of a run.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

import pandas as pd

from ..config import SESSION_GROUP, VERIFICATION_STATUS


@dataclass(frozen=True)
class AttendanceRecord:
    customer_name: str
    event_starts_at: str                 # raw text as exported, used for the unique key
    event_ts: pd.Timestamp | None        # parsed, naive; None when unparseable
    membership_name: str = ""
    offering_type: str = ""
    instructors: str = ""
    status: str = ""


@dataclass(frozen=True)
class PaymentRecord:
    payment_date: str
    payment_ts: pd.Timestamp | None
    customer_name: str
    memo: str = ""
    amount: float = 0.0
    invoice_number: str = ""
    category: str = ""
    is_verified: bool | None = None


@dataclass(frozen=True)
class PricingRule:

    """

    One row of the pricing rule table.

    unit_price is None when the sheet leaves it blank; that is different from 0
    and makes the revenue calculator fall back to the paid amount.

    """

    rule_name: str
    package_name: str
    session_type: str = SESSION_GROUP
    price: float = 0.0
    sessions: float = 0.0
    unit_price: float | None = None
    coach_percentage: float | None = None
    bgm_percentage: float | None = None
    management_percentage: float | None = None
    mfc_percentage: float | None = None
    attendance_alias: str = ""
    payment_memo_alias: str = ""
    rule_id: str = ""

    @property
    def is_default(self) -> bool:
        return not self.package_name.strip()


@dataclass(frozen=True)
class Discount:
    discount_code: str
    name: str = ""
    match_type: str = "contains"          # exact | contains | regex
    applicable_percentage: float = 0.0
    coach_payment_type: str = "partial"   # full | partial | free
    active: bool = False
    discount_id: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.discount_code


@dataclass(frozen=True)
class MasterRow:

    """

    One reconciled ledger row keyed by the attendance unique key.

    package_price and session_price are the undiscounted rule values; only
    discounted_session_price and the four split amounts carry discounts.

    """

    customer_name: str
    event_starts_at: str
    membership_name: str
    instructors: str
    status: str
    discount: str
    discount_percentage: float
    verification_status: str
    invoice_number: str
    amount: float
    payment_date: str
    package_price: float
    session_price: float
    discounted_session_price: float
    coach_amount: float
    bgm_amount: float
    management_amount: float
    mfc_amount: float
    session_type: str
    coach_percentage: float
    bgm_percentage: float
    management_percentage: float
    mfc_percentage: float
    unique_key: str

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VERIFICATION_STATUS.verified

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
