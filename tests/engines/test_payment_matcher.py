import pandas as pd
import pytest

from attendance_recon.core.models import AttendanceRecord, PaymentRecord, PricingRule
from attendance_recon.engines.payment_matcher import (
    date_score,
    find_matching_payment,
    memo_aliases,
    text_score,
)


RULES = [
    PricingRule(
        rule_name="Junior PAYG",
        package_name="Junior Single - Pay As You Go",
        session_type="group",
        payment_memo_alias="Junior PAYG",
    ),
    PricingRule(
        rule_name="Private",
        package_name="Private 1 to 1",
        session_type="private",
        payment_memo_alias="PT session",
    ),
]


def _attendance(**overrides) -> AttendanceRecord:
    values = {
        "customer_name": "Kaia Attard",
        "event_starts_at": "2024-03-01T10:00:00Z",
        "event_ts": pd.Timestamp("2024-03-01 10:00"),
        "membership_name": "Junior Single - Pay As You Go",
        "offering_type": "KIDS COMBAT",
        "instructors": "Sam",
    }
    values.update(overrides)
    return AttendanceRecord(**values)


def _payment(date: str, memo: str, customer: str = "Kaia Attard", invoice: str = "1") -> PaymentRecord:
    return PaymentRecord(
        payment_date=date,
        payment_ts=pd.Timestamp(date),
        customer_name=customer,
        memo=memo,
        amount=15.0,
        invoice_number=invoice,
    )


def test_memo_aliases_by_category() -> None:
    assert memo_aliases("group", RULES) == ["Junior PAYG"]
    assert memo_aliases("private", RULES) == ["PT session"]


@pytest.mark.parametrize(
    ("payment_date", "expected"),
    [
        ("2024-03-01", 1.0),
        ("2024-03-04", 0.7),
        ("2024-02-23", 0.7),
        ("2024-03-08", 0.7),
        ("2024-03-09", 0.0),
    ],
)
def test_date_score(payment_date: str, expected: float) -> None:
    assert date_score(pd.Timestamp("2024-03-01 10:00"), pd.Timestamp(payment_date)) == expected


def test_text_score_precedence() -> None:
    label = "Junior Single - Pay As You Go"
    aliases = ["Junior PAYG"]

    assert text_score(label, "junior payg", aliases) == 2.0
    assert text_score(label, "Junior PAYG March", aliases) == 1.8
    assert text_score(label, "Junior Single - Pay as You Go", []) == 1.5
    assert text_score(label, "pay go", []) == pytest.approx(2 / 5)


def test_same_day_alias_match_is_accepted() -> None:
    payment = _payment("2024-03-01", "Junior PAYG")
    assert find_matching_payment(_attendance(), [payment], RULES) is payment


def test_other_customers_are_ignored() -> None:
    payment = _payment("2024-03-01", "Junior PAYG", customer="Leo Grech")
    assert find_matching_payment(_attendance(), [payment], RULES) is None


def test_customer_name_match_is_case_insensitive() -> None:
    payment = _payment("2024-03-01", "Junior PAYG", customer="  kaia   ATTARD")
    assert find_matching_payment(_attendance(), [payment], RULES) is payment


def test_best_score_wins() -> None:
    weak = _payment("2024-03-05", "Junior Single - Pay as You Go", invoice="weak")
    strong = _payment("2024-03-01", "Junior PAYG", invoice="strong")
    assert find_matching_payment(_attendance(), [weak, strong], RULES) is strong


def test_tie_keeps_earlier_payment() -> None:
    first = _payment("2024-03-01", "Junior PAYG", invoice="first")
    second = _payment("2024-03-01", "Junior PAYG", invoice="second")
    assert find_matching_payment(_attendance(), [first, second], RULES) is first


def test_far_date_and_unrelated_memo_is_rejected() -> None:
    payment = _payment("2024-03-20", "Gift card")
    assert find_matching_payment(_attendance(), [payment], RULES) is None


def test_text_alone_can_pass_threshold() -> None:
    # 0 for the date, 2.0 for an exact memo alias
    payment = _payment("2024-04-15", "Junior PAYG")
    assert find_matching_payment(_attendance(), [payment], RULES) is payment


def test_near_date_needs_some_text_similarity() -> None:
    # 0.7 + jaccard({single, pay, as, you, go}, {refund}) = 0.7 < 1.1
    payment = _payment("2024-03-03", "Refund")
    assert find_matching_payment(_attendance(), [payment], RULES) is None


def test_attendance_without_date_never_matches() -> None:
    payment = _payment("2024-03-01", "Junior PAYG")
    assert find_matching_payment(_attendance(event_ts=None), [payment], RULES) is None
