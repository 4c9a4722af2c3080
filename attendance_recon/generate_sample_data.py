"""
generate_sample_data.py

Seeded generator for synthetic studio inputs.

Builds the four input sheets (attendance, payments, rules, discounts) with
raw headers as the booking and accounting tools export them, so the field
resolvers in cleaning/ are exercised. Output is deterministic for a seed and
mixes ordinary rows with edge cases:

- payments on the class day, a few days later, and never
- discount memos (generic "discount", a coupon code, a regex-matched promo)
- private 1-to-1 sessions next to group classes
- membership labels with case/spacing drift from the rule names
- an unparseable event date and a currency-formatted amount
"""

from __future__ import annotations

import argparse
import random
from datetime import datetime, timedelta
from pathlib import Path

import pandas as pd
from faker import Faker

from .config import SAMPLE_DIR, SAMPLE_WORKBOOK_NAME, SHEET_NAMES
from .outputs.export_utils import write_multi_sheet_excel


DEFAULT_SEED = 20240301
DEFAULT_CUSTOMERS = 25

PERIOD_START = datetime(2024, 3, 1)
PERIOD_DAYS = 90

GROUP_SPLIT = (43.5, 30.0, 8.5, 18.0)
PRIVATE_SPLIT = (80.0, 15.0, 0.0, 5.0)

# (package, session_type, price, sessions, unit_price, split, memo alias, offering)
PACKAGES = [
    ("Junior Single - Pay As You Go", "group", 15, 1, 15, GROUP_SPLIT, "Junior PAYG", "KIDS COMBAT"),
    ("Adult 5 Pack", "group", 60, 5, 12, GROUP_SPLIT, "Adult 5 Pack", "Boxing Fundamentals"),
    ("Adult 2x Per Week Monthly", "group", 80, 8, 10, GROUP_SPLIT, "2x week monthly", "Kickboxing"),
    ("Private 1 to 1 Single", "private", 50, 1, 50, PRIVATE_SPLIT, "Private Session", "Private 1 to 1"),
    ("Private 5 Pack", "private", 225, 5, 45, PRIVATE_SPLIT, "Private 5 Pack", "Private 1-to-1 Coaching"),
]

DISCOUNTS = [
    ("D1", "Half price", "discount", "contains", 50, "partial", "TRUE"),
    ("D2", "Sibling 20", "SIB20", "contains", 20, "partial", "TRUE"),
    ("D3", "Staff", "STAFF", "exact", 100, "free", "FALSE"),
    ("D4", "Promo", r"promo\s*\d+", "regex", 10, "partial", "TRUE"),
    ("D5", "Broken pattern", "[unclosed", "regex", 30, "partial", "TRUE"),
]


def _label_drift(rng: random.Random, label: str) -> str:
    choice = rng.random()
    if choice < 0.15:
        return label.lower()
    if choice < 0.25:
        return label.upper()
    if choice < 0.35:
        return label.replace(" - ", " -  ")
    return label


def _build_rules() -> pd.DataFrame:
    rows = []
    for idx, (package, session_type, price, sessions, unit, split, memo_alias, _) in enumerate(
        PACKAGES, start=1
    ):
        rows.append(
            {
                "id": f"R{idx}",
                "rule_name": package,
                "package_name": package,
                "session_type": session_type,
                "price": price,
                "sessions": sessions,
                "unit_price": unit,
                "coach_percentage": split[0],
                "bgm_percentage": split[1],
                "management_percentage": split[2],
                "mfc_percentage": split[3],
                "attendance_alias": package,
                "payment_memo_alias": memo_alias,
            }
        )
    # default group rule: blank package, unit price from the payment
    rows.append(
        {
            "id": f"R{len(PACKAGES) + 1}",
            "rule_name": "Group default",
            "package_name": "",
            "session_type": "group",
            "price": 0,
            "sessions": 0,
            "unit_price": "",
            "coach_percentage": GROUP_SPLIT[0],
            "bgm_percentage": GROUP_SPLIT[1],
            "management_percentage": GROUP_SPLIT[2],
            "mfc_percentage": GROUP_SPLIT[3],
            "attendance_alias": "",
            "payment_memo_alias": "",
        }
    )
    return pd.DataFrame(rows)


def _build_discounts() -> pd.DataFrame:
    columns = [
        "id",
        "name",
        "discount_code",
        "match_type",
        "applicable_percentage",
        "coach_payment_type",
        "active",
    ]
    return pd.DataFrame([dict(zip(columns, row)) for row in DISCOUNTS], columns=columns)


def _build_sessions(
    rng: random.Random,
    faker: Faker,
    n_customers: int,
) -> tuple[list[dict[str, object]], list[dict[str, object]]]:
    coaches = [faker.first_name() for _ in range(4)]
    customers = []
    seen: set[str] = set()
    while len(customers) < n_customers:
        name = faker.name()
        if name not in seen:
            seen.add(name)
            customers.append(name)

    attendance: list[dict[str, object]] = []
    payments: list[dict[str, object]] = []
    invoice = 1000

    for customer in customers:
        package, _, _, _, unit, _, memo_alias, offering = rng.choice(PACKAGES)
        days = sorted(rng.sample(range(PERIOD_DAYS), k=rng.randint(1, 4)))
        instructor = rng.choice(coaches)

        for day in days:
            starts_at = PERIOD_START + timedelta(days=day, hours=rng.choice([9, 10, 17, 18]))
            attendance.append(
                {
                    "Customer Name": customer,
                    "Event Starts At": starts_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
                    "Membership Name": _label_drift(rng, package),
                    "Offering Type Name": offering,
                    "Instructors": instructor,
                    "Status": "Checked In",
                }
            )

            roll = rng.random()
            if roll < 0.2:
                continue                             # unpaid

            invoice += 1
            paid_on = starts_at + timedelta(days=rng.choice([0, 0, 0, 1, 3, 6]))
            memo = rng.choice([package, memo_alias])
            amount: object = float(unit)
            if roll > 0.92:
                memo = f"{memo} discount"
                amount = round(unit * 0.5, 2)
            elif roll > 0.88:
                memo = f"{memo} SIB20"
                amount = round(unit * 0.8, 2)
            elif roll > 0.85:
                memo = f"{memo} promo 24"
                amount = round(unit * 0.9, 2)
            elif roll > 0.83:
                amount = f"${unit:,.2f}"

            payments.append(
                {
                    "Date": paid_on.strftime("%Y-%m-%d"),
                    "Customer": customer,
                    "Memo": memo,
                    "Amount": amount,
                    "Invoice": str(invoice),
                    "Category": "Sales",
                }
            )

    if attendance:
        broken = dict(attendance[0])
        broken["Event Starts At"] = "not a date"
        attendance.append(broken)

    return attendance, payments


def generate_sample_frames(
    seed: int = DEFAULT_SEED,
    n_customers: int = DEFAULT_CUSTOMERS,
) -> dict[str, pd.DataFrame]:
    """Raw input sheets keyed by their table names in SHEET_NAMES."""
    rng = random.Random(seed)
    faker = Faker()
    faker.seed_instance(seed)

    attendance, payments = _build_sessions(rng, faker, n_customers)
    attendance_columns = [
        "Customer Name",
        "Event Starts At",
        "Membership Name",
        "Offering Type Name",
        "Instructors",
        "Status",
    ]
    payment_columns = ["Date", "Customer", "Memo", "Amount", "Invoice", "Category"]

    return {
        SHEET_NAMES.attendance: pd.DataFrame(attendance, columns=attendance_columns),
        SHEET_NAMES.payments: pd.DataFrame(payments, columns=payment_columns),
        SHEET_NAMES.rules: _build_rules(),
        SHEET_NAMES.discounts: _build_discounts(),
    }


def generate_sample_data(
    output_path: Path = SAMPLE_DIR / SAMPLE_WORKBOOK_NAME,
    seed: int = DEFAULT_SEED,
    n_customers: int = DEFAULT_CUSTOMERS,
) -> Path:
    frames = generate_sample_frames(seed=seed, n_customers=n_customers)
    return write_multi_sheet_excel(frames, output_path)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate a seeded synthetic studio workbook (attendance, payments, rules, discounts)."
    )
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Deterministic RNG seed")
    parser.add_argument("--customers", type=int, default=DEFAULT_CUSTOMERS, help="Number of customers")
    parser.add_argument(
        "--output",
        type=Path,
        default=SAMPLE_DIR / SAMPLE_WORKBOOK_NAME,
        help="Destination .xlsx workbook",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    path = generate_sample_data(output_path=args.output, seed=args.seed, n_customers=args.customers)
    print(f"Wrote sample workbook to: {path}")


if __name__ == "__main__":
    main()
