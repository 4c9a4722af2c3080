#Docstring for attendance_recon/config module
"""
config.py

Central configuration for the attendance-to-payment reconciliation pipeline.

This module defines sheet names, raw header candidates, ledger column layouts,
matching thresholds, and revenue-split defaults used across the project.

It is intentionally the single source of truth for:
- Sheet/table names in the external workbook
- Column standardization (raw export headers -> canonical names)
- Matching strategy controls (date windows, text scores, acceptance thresholds)
- Business logic parameters for the revenue calculator
  - Default split percentages per session category
  - Text synonym collapses used by the canonicalizer

Design goals
------------
- Consistency: all modules rely on the same canonical names and thresholds.
- Maintainability: scores and percentages are edited in one place.
- Explicitness: run options travel in a `RunConfig` object, never in env flags.

Contents
--------
1) Paths and project defaults
2) Sheet names (SHEET_NAMES)
3) Raw header candidates per input sheet
   - ATTENDANCE_FIELD_CANDIDATES, PAYMENT_FIELD_CANDIDATES,
     RULE_FIELD_CANDIDATES, DISCOUNT_FIELD_CANDIDATES
4) Ledger layout
   - MASTER_COLUMNS (canonical), MASTER_COLUMN_MAP (canonical -> sheet header)
   - CSV_EXPORT_COLUMNS (fixed export order)
5) Matching configuration (MATCHING_CONFIG)
6) Revenue split defaults (DEFAULT_SPLITS)
7) Canonicalization synonyms (CANONICAL_SYNONYMS)
8) Run configuration (DateFilterConfig, RunConfig)

Usage
-----
    from attendance_recon.config import MATCHING_CONFIG, DEFAULT_SPLITS, RunConfig
"""


from dataclasses import dataclass, field
from pathlib import Path



# --- Base paths ----------------------------------------------------------------

# attendance_recon/ -> project root
BASE_DIR = Path(__file__).resolve().parents[1]

DATA_DIR = BASE_DIR / "data"
SAMPLE_DIR = DATA_DIR / "sample"

REPORTS_DIR = BASE_DIR / "reports"
REPORTS_FIGURES_DIR = REPORTS_DIR / "figures"
REPORTS_OUTPUTS_DIR = REPORTS_DIR / "outputs"

SAMPLE_WORKBOOK_NAME = "studio_sample.xlsx"



# --- Sheet names ----------------------------------------------------------------

@dataclass(frozen=True)
class SheetNames:

    """

    Names of the tables read from and written to external storage.

    """

    attendance: str = "attendance"
    payments: str = "Payments"
    rules: str = "rules"
    discounts: str = "discounts"
    master: str = "payment_calc_detail"


SHEET_NAMES = SheetNames()



# --- Raw header candidates (canonical -> ordered raw headers) ---------------------

# Exports from the booking and accounting tools are inconsistent. Each canonical
# field lists the raw headers to try, in order. Matching is case-insensitive and
# ignores surrounding whitespace; the first non-blank value wins per row.

ATTENDANCE_FIELD_CANDIDATES = {
    "customer_name":   ("Customer Name", "Customer"),
    "event_starts_at": ("Event Starts At", "EventStartAt", "EventStart", "Date"),
    "membership_name": ("Membership Name", "Membership", "MembershipName"),
    "offering_type":   ("Offering Type Name", "Offering Type", "Offering", "Class Type"),
    "instructors":     ("Instructors", "Instructor"),
    "status":          ("Status",),
}

PAYMENT_FIELD_CANDIDATES = {
    "payment_date":   ("Date", "Payment Date", "Transaction Date"),
    "customer_name":  ("Customer", "Customer Name"),
    "memo":           ("Memo", "Description", "Memo/Description"),
    "amount":         ("Amount", "Total"),
    "invoice_number": ("Invoice", "Invoice #", "Invoice Number", "Num"),
    "category":       ("Category",),
    "is_verified":    ("IsVerified", "Is Verified", "Verified"),
}

RULE_FIELD_CANDIDATES = {
    "rule_id":               ("id", "ID", "rule_id"),
    "rule_name":             ("rule_name", "name", "rule"),
    "package_name":          ("package_name", "membership_name", "name"),
    "session_type":          ("session_type", "category"),
    "private_flag":          ("privateSession", "private_session"),
    "price":                 ("price", "package_price"),
    "sessions":              ("sessions", "sessions_per_pack"),
    "unit_price":            ("unit_price", "session_price"),
    "coach_percentage":      ("coach_percentage", "coachPct"),
    "bgm_percentage":        ("bgm_percentage", "bgmPct"),
    "management_percentage": ("management_percentage", "mgmtPct"),
    "mfc_percentage":        ("mfc_percentage", "mfcPct"),
    "attendance_alias":      ("attendance_alias", "attendanceAlias"),
    "payment_memo_alias":    ("payment_memo_alias", "paymentMemoAlias"),
}

DISCOUNT_FIELD_CANDIDATES = {
    "discount_id":           ("id", "ID", "discount_id"),
    "name":                  ("name", "discount_name"),
    "discount_code":         ("discount_code", "code"),
    "match_type":            ("match_type", "matchType"),
    "applicable_percentage": ("applicable_percentage", "percentage", "pct"),
    "coach_payment_type":    ("coach_payment_type", "payment_type"),
    "active":                ("active", "is_active"),
}

# Alias columns written back to the rules sheet the first time they are missing.
RULE_ALIAS_COLUMNS = ("attendance_alias", "payment_memo_alias")



# --- Ledger layout ----------------------------------------------------------------

# Canonical master-ledger columns, in storage order.
MASTER_COLUMNS = [
    "customer_name",
    "event_starts_at",
    "membership_name",
    "instructors",
    "status",
    "discount",
    "discount_percentage",
    "verification_status",
    "invoice_number",
    "amount",
    "payment_date",
    "package_price",
    "session_price",
    "discounted_session_price",
    "coach_amount",
    "bgm_amount",
    "management_amount",
    "mfc_amount",
    "session_type",
    "coach_percentage",
    "bgm_percentage",
    "management_percentage",
    "mfc_percentage",
    "unique_key",
]

MASTER_TEXT_COLUMNS = [
    "customer_name",
    "event_starts_at",
    "membership_name",
    "instructors",
    "status",
    "discount",
    "verification_status",
    "invoice_number",
    "payment_date",
    "session_type",
    "unique_key",
]

MASTER_NUMERIC_COLUMNS = [c for c in MASTER_COLUMNS if c not in MASTER_TEXT_COLUMNS]

SPLIT_AMOUNT_COLUMNS = {
    "coach": "coach_amount",
    "bgm": "bgm_amount",
    "management": "management_amount",
    "mfc": "mfc_amount",
}

SPLIT_PERCENTAGE_COLUMNS = {
    "coach": "coach_percentage",
    "bgm": "bgm_percentage",
    "management": "management_percentage",
    "mfc": "mfc_percentage",
}

MASTER_COLUMN_MAP = {
    # Canonical name              # Sheet header
    "customer_name":             "Customer Name",
    "event_starts_at":           "Event Starts At",
    "membership_name":           "Membership Name",
    "instructors":               "Instructors",
    "status":                    "Status",
    "discount":                  "Discount",
    "discount_percentage":       "Discount %",
    "verification_status":       "Verification Status",
    "invoice_number":            "Invoice #",
    "amount":                    "Amount",
    "payment_date":              "Payment Date",
    "package_price":             "Package Price",
    "session_price":             "Session Price",
    "discounted_session_price":  "Discounted Session Price",
    "coach_amount":              "Coach Amount",
    "bgm_amount":                "BGM Amount",
    "management_amount":         "Management Amount",
    "mfc_amount":                "MFC Amount",
    "session_type":              "Session Type",
    "coach_percentage":          "Coach %",
    "bgm_percentage":            "BGM %",
    "management_percentage":     "Management %",
    "mfc_percentage":            "MFC %",
    "unique_key":                "UniqueKey",
}

# Fixed column order of the CSV export.
CSV_EXPORT_COLUMNS = [
    "Customer Name",
    "Event Starts At",
    "Membership Name",
    "Instructors",
    "Status",
    "Discount",
    "Discount %",
    "Verification Status",
    "Invoice #",
    "Amount",
    "Payment Date",
    "Session Price",
    "Coach Amount",
    "BGM Amount",
    "Management Amount",
    "MFC Amount",
]



# --- Verification status labels ----------------------------------------------------

@dataclass(frozen=True)
class VerificationStatusConfig:
    verified: str = "Verified"
    not_verified: str = "Not Verified"


VERIFICATION_STATUS = VerificationStatusConfig()



# --- Session categories ---------------------------------------------------------------

SESSION_GROUP = "group"
SESSION_PRIVATE = "private"

# Offering labels containing any of these (case-insensitive) are private sessions.
PRIVATE_SESSION_MARKERS = ("private", "1 to 1", "1-to-1")



# --- Matching configuration ------------------------------------------------------------

@dataclass(frozen=True)
class MatchingConfig:

    """

    Scores and thresholds for payment and rule matching.

    Payment score = date score + text score, where the date score is the
    best of same_day_score / near_date_score and the text score is the first
    of alias_exact / alias_fuzzy / membership_fuzzy / token jaccard that applies.

    payment_accept_threshold and rule_accept_threshold were tuned by hand
    against studio exports and may need revisiting on new data.

    """

    same_day_score: float = 1.0
    near_date_score: float = 0.7
    near_date_window_days: int = 7

    alias_exact_score: float = 2.0
    alias_fuzzy_score: float = 1.8
    membership_fuzzy_score: float = 1.5
    payment_accept_threshold: float = 1.1

    rule_alias_contains_score: float = 2.0
    rule_alias_jaccard_weight: float = 1.5
    rule_package_contains_score: float = 1.5
    rule_accept_threshold: float = 0.5


MATCHING_CONFIG = MatchingConfig()



# --- Revenue split defaults ----------------------------------------------------------

@dataclass(frozen=True)
class SplitPercentages:

    """

    Revenue split of a session price, in percent. By convention the four
    parts sum to 100: coach, BGM (venue), management, and MFC (retained fee).

    """

    coach: float
    bgm: float
    management: float
    mfc: float

    def as_dict(self) -> dict[str, float]:
        return {
            "coach": self.coach,
            "bgm": self.bgm,
            "management": self.management,
            "mfc": self.mfc,
        }


# Used when no pricing rule resolves for an attendance record.
DEFAULT_SPLITS = {
    SESSION_PRIVATE: SplitPercentages(coach=80.0, bgm=15.0, management=0.0, mfc=5.0),
    SESSION_GROUP:   SplitPercentages(coach=43.5, bgm=30.0, management=8.5, mfc=18.0),
}



# --- Canonicalization synonyms ---------------------------------------------------------

# Applied in order after lowercasing, diacritic stripping and punctuation removal.
CANONICAL_SYNONYMS = (
    (r"pack(s)?", "pack"),
    (r"x\s*(per\s*)?week", "xweek"),
    (r"per\s*week", "xweek"),
    (r"monthly|month(ly)?", "monthly"),
    (r"single(?:\s*session)?|payg|day\s*pass", "single"),
    (r"adult|junior|youth|plan|loyalty|only", " "),
)

# Memo keyword that triggers the generic "discount" fallback.
GENERIC_DISCOUNT_CODE = "discount"



# --- Run configuration -------------------------------------------------------------------

@dataclass(frozen=True)
class DateFilterConfig:

    """

    Inclusive date window applied to attendance and payment records.

    Bounds accept dates, datetimes, or YYYY-MM-DD strings. None or blank means
    unbounded on that side.

    """

    date_start: object = None
    date_end: object = None


DATE_FILTER_CONFIG = DateFilterConfig()


@dataclass(frozen=True)
class RunConfig:

    """

    Options for one reconciliation run.

    force_reverify:
        Recompute rows whose unique key is already in the ledger and always
        persist the merged ledger.
    clear_existing:
        Ignore the persisted ledger and overwrite it with this run's rows only.

    """

    date_filter: DateFilterConfig = field(default_factory=DateFilterConfig)
    force_reverify: bool = False
    clear_existing: bool = False
