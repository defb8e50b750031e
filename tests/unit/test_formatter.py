from __future__ import annotations

import math

import pytest

from item_pricer.models.pricing_result import ResultStatus
from item_pricer.services.formatter import (
    display,
    display_allow_zero,
    ensure_numeric,
    extract_amount,
    extract_numeric,
    status_label,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("$1,234.50", 1234.5),
        (" 480 ", 480.0),
        (45, 45.0),
        (12.5, 12.5),
        ("$0.99", 0.99),
    ],
)
def test_extract_numeric_parses_numbers_and_currency(raw, expected):
    assert extract_numeric(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", None, "N/A", "abc", 0, -5, "-3.00", math.nan, math.inf, True])
def test_extract_numeric_rejects_absent_and_non_positive(raw):
    assert extract_numeric(raw) is None


def test_amount_variant_passes_zero_and_negatives_through():
    # the depreciation policy differs from the price policy on the same inputs
    assert extract_numeric(-5) is None
    assert extract_amount(-5) == -5
    assert extract_numeric(0) is None
    assert extract_amount(0) == 0
    assert extract_amount("$-12.00") == -12.0
    assert extract_amount("") is None


def test_display_formats_positive_prices_only():
    assert display(480) == "$480.00"
    assert display("$1,234.5") == "$1234.50"
    assert display(None) == ""
    assert display(0) == ""
    assert display(-1) == ""


def test_display_allow_zero_keeps_zero_and_negatives():
    assert display_allow_zero(0) == "$0.00"
    assert display_allow_zero(-2.5) == "$-2.50"
    assert display_allow_zero(None) == ""


def test_ensure_numeric_never_blank():
    assert ensure_numeric(None) == 1.00
    assert ensure_numeric("") == 1.00
    assert ensure_numeric(-10) == 1.00
    assert ensure_numeric("$25") == 25.0
    assert ensure_numeric(None, minimum=2.5) == 2.5


def test_status_label_never_returns_na():
    assert status_label(ResultStatus.FOUND) == "Found"
    assert status_label(ResultStatus.ESTIMATED) == "Estimated"
    assert status_label(ResultStatus.MANUAL_REVIEW) == "Manual Review"
    assert status_label(ResultStatus.UNAVAILABLE) == "Processed"
    assert status_label(None) == "Processed"
