from __future__ import annotations

import datetime as dt

import pytest

from item_pricer.excel.detector import detect, has_item_number_signature, is_header_like, score_row
from item_pricer.models.raw_table import make_raw_table


def test_letterhead_and_blank_rows_are_skipped(banner_rows):
    schema = detect(make_raw_table(banner_rows))
    assert schema.data_start_index == 2
    assert schema.headers == ("Item #", "Description", "Qty", "Price")


def test_item_number_signature_wins_over_higher_score():
    table = make_raw_table([
        ["Room", "Description", "Quantity", "Unit Cost", "Notes here"],
        ["Item Number", "x"],
    ])
    assert detect(table).data_start_index == 1


def test_scored_pass_picks_best_row():
    table = make_raw_table([
        ["Claim 12345"],
        ["Policy holder", "Jane Doe"],
        ["Room", "Description", "Qty", "Cost"],
        ["Kitchen", "Toaster", 1, 30],
    ])
    assert detect(table).data_start_index == 2


def test_ties_keep_earliest_row():
    table = make_raw_table([["Description", "Price"], ["Description", "Price"]])
    assert detect(table).data_start_index == 0


def test_no_header_like_row_falls_back_to_zero():
    table = make_raw_table([[1, 2, 3], [4.5, "", None]])
    schema = detect(table)
    assert schema.data_start_index == 0
    assert schema.headers == ("1", "2", "3")


def test_empty_table():
    schema = detect(())
    assert schema.data_start_index == 0
    assert schema.headers == ()


def test_only_leading_rows_are_scanned():
    rows = [[1]] * 25 + [["Item #", "Description"]]
    assert detect(make_raw_table(rows)).data_start_index == 0
    assert detect(make_raw_table(rows), max_scan_rows=30).data_start_index == 25


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Description", True),
        ("Item #", True),
        ("Age (Years)", True),
        ("Model 3000 XL", True),
        ("480", False),
        ("$1,200.00", False),
        ("12/31/2023", False),
        (42, False),
        (dt.date(2024, 1, 1), False),
        ("", False),
        ("sku_123", False),
    ],
)
def test_is_header_like(value, expected):
    assert is_header_like(value) is expected


def test_score_row_counts_cells_and_bonuses():
    # 3 header-like cells + description + price
    assert score_row(["Description", "Price", "Notes", 5]) == 6 + 5 + 5
    assert score_row([1, 2]) == 0


def test_signature_detection():
    assert has_item_number_signature(["ITEM#", "desc"])
    assert has_item_number_signature(["", "Item Number"])
    assert not has_item_number_signature(["Items", "Number"])
    assert not has_item_number_signature([])
