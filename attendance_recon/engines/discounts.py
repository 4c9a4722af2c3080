# Docstring for attendance_recon/engines/discounts module
"""
discounts.py

Promotional discount detection from payment memos.

Two variants are used by the reconciliation engine:

1) Per matched payment (`find_applicable_discount`)
   - Only active discounts are eligible.
   - The first discount whose code appears in the memo (case-insensitive
     substring) wins.
   - Otherwise, when the memo mentions "discount" or the amount is negative,
     the active discount whose code is literally "discount" applies.

2) Per invoice, over the whole payment window (`build_invoice_discounts`)
   - Each active discount is tested against each payment memo with its
     match_type: exact (canonical equality), contains (canonical substring)
     or regex (case-insensitive search; patterns that fail to compile never
     match).
   - When several discounts hit the same invoice, the highest
     applicable_percentage wins.
   - `apply_invoice_discounts` then rewrites matching ledger rows.

Public API
----------
- InvoiceDiscount
- find_applicable_discount(payment, discounts) -> Discount | None
- discount_matches_memo(discount, memo) -> bool
- build_invoice_discounts(payments, discounts) -> dict[str, InvoiceDiscount]
- apply_invoice_discounts(ledger, invoice_discounts) -> pd.DataFrame
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Sequence

import pandas as pd

from ..config import GENERIC_DISCOUNT_CODE, SPLIT_AMOUNT_COLUMNS, SPLIT_PERCENTAGE_COLUMNS
from ..core.models import Discount, PaymentRecord
from ..core.normalizers import canonicalize, round2_series


@dataclass(frozen=True)
class InvoiceDiscount:
    name: str
    percentage: float


def find_applicable_discount(
    payment: PaymentRecord | None,
    discounts: Sequence[Discount],
) -> Discount | None:
    if payment is None:
        return None

    active = [d for d in discounts if d.active and d.discount_code.strip()]
    memo = payment.memo.lower()

    for discount in active:
        if discount.discount_code.strip().lower() in memo:
            return discount

    if GENERIC_DISCOUNT_CODE in memo or payment.amount < 0:
        for discount in active:
            if discount.discount_code.strip().lower() == GENERIC_DISCOUNT_CODE:
                return discount
    return None


def discount_matches_memo(discount: Discount, memo: str) -> bool:
    code = (discount.discount_code or discount.name).strip()
    if not code or not memo:
        return False
    if discount.match_type == "exact":
        return canonicalize(memo) == canonicalize(code)
    if discount.match_type == "regex":
        try:
            return re.search(code, memo, flags=re.IGNORECASE) is not None
        except re.error:
            return False
    return canonicalize(code) in canonicalize(memo)


def build_invoice_discounts(
    payments: Sequence[PaymentRecord],
    discounts: Sequence[Discount],
) -> dict[str, InvoiceDiscount]:
    active = [d for d in discounts if d.active]
    invoice_discounts: dict[str, InvoiceDiscount] = {}
    if not active:
        return invoice_discounts

    for payment in payments:
        invoice = payment.invoice_number.strip()
        if not invoice or not payment.memo:
            continue
        for discount in active:
            if not discount_matches_memo(discount, payment.memo):
                continue
            pct = discount.applicable_percentage
            existing = invoice_discounts.get(invoice)
            if existing is None or pct > existing.percentage:
                invoice_discounts[invoice] = InvoiceDiscount(discount.display_name, pct)
    return invoice_discounts


def apply_invoice_discounts(
    ledger: pd.DataFrame,
    invoice_discounts: Mapping[str, InvoiceDiscount],
) -> pd.DataFrame:
    """
    Overwrite the discount of every ledger row whose invoice has one.

    The undiscounted base (session_price, or the paid amount when the rule had
    no unit price) is scaled by (1 - pct/100) and the split amounts are
    recomputed from it with the row's split percentages. package_price and
    session_price are never changed, and applying the same discounts twice
    gives the same result.
    """
    if ledger.empty or not invoice_discounts:
        return ledger

    df = ledger.copy()
    invoices = df["invoice_number"].astype(str).str.strip()
    mask = invoices.ne("") & invoices.isin(list(invoice_discounts))
    if not mask.any():
        return df

    names = invoices[mask].map(lambda inv: invoice_discounts[inv].name)
    pcts = invoices[mask].map(lambda inv: invoice_discounts[inv].percentage).astype("float64")
    factor = 1 - pcts / 100

    session_price = df.loc[mask, "session_price"]
    base = session_price.where(session_price > 0, df.loc[mask, "amount"])
    discounted = round2_series(base * factor)

    df.loc[mask, "discount"] = names
    df.loc[mask, "discount_percentage"] = pcts
    df.loc[mask, "discounted_session_price"] = discounted
    for part, amount_col in SPLIT_AMOUNT_COLUMNS.items():
        pct_col = SPLIT_PERCENTAGE_COLUMNS[part]
        df.loc[mask, amount_col] = round2_series(discounted * df.loc[mask, pct_col] / 100)
    return df
