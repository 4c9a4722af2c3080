from datetime import date

import pandas as pd
import pytest

from attendance_recon.config import DateFilterConfig
from attendance_recon.core.validators import (
    normalize_date_filter_config,
    validate_required_columns,
    validate_split_percentages,
)


def test_date_filter_defaults_to_all() -> None:
    date_start, date_end = normalize_date_filter_config(DateFilterConfig())

    assert date_start is None
    assert date_end is None


def test_date_filter_blank_strings_are_unbounded() -> None:
    assert normalize_date_filter_config(DateFilterConfig(date_start="", date_end=" ")) == (None, None)


def test_date_filter_parses_strings_and_datetimes() -> None:
    date_start, date_end = normalize_date_filter_config(
        DateFilterConfig(date_start="2024-03-01", date_end=pd.Timestamp("2024-03-31 18:00"))
    )

    assert date_start == date(2024, 3, 1)
    assert date_end == date(2024, 3, 31)


def test_date_filter_invalid_range_raises() -> None:
    with pytest.raises(ValueError, match="Invalid date range"):
        normalize_date_filter_config(
            DateFilterConfig(date_start="2025-02-01", date_end="2025-01-01")
        )


def test_date_filter_invalid_value_raises() -> None:
    with pytest.raises(ValueError, match="Invalid date_start"):
        normalize_date_filter_config(DateFilterConfig(date_start="someday"))


def test_validate_required_columns() -> None:
    df = pd.DataFrame({"a": [1]})
    validate_required_columns(df, ["a"])
    with pytest.raises(ValueError, match="Missing required columns: b, c"):
        validate_required_columns(df, ["a", "b", "c"])


def test_validate_split_percentages() -> None:
    assert validate_split_percentages(43.5, 30, 8.5, 18) is True
    assert validate_split_percentages(80, 15, 0, 5) is True
    assert validate_split_percentages(50, 30, 10, 5) is False
    assert validate_split_percentages(80, None, 0, 5) is False
