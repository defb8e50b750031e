from __future__ import annotations

import csv
from pathlib import Path

from item_pricer.excel.writer import CSV_HEADERS, IMAGE_GRID_HEADERS, write_results_csv
from item_pricer.models.export_table import DERIVED_COLUMNS, PRICE_COLUMNS, PRICER_LABEL

"""Export layout contract: appended columns, image grid and CSV headers."""


def test_derived_columns():
    assert DERIVED_COLUMNS == (
        "Pricer",
        "Replacement Source",
        "Replacement Price",
        "Total Replacement Price",
        "URL",
    )
    assert PRICER_LABEL == "AI Pricer"
    assert set(PRICE_COLUMNS) <= set(DERIVED_COLUMNS)


def test_image_grid_headers():
    assert IMAGE_GRID_HEADERS == ("Item #", "Description") + DERIVED_COLUMNS


def test_csv_headers_and_placeholder_prices(tmp_path: Path, result_factory):
    path = write_results_csv(
        [result_factory(1, "Desk", unit_price=None, status=None, source="")],
        tmp_path / "x - evaluated.csv",
    )
    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert tuple(rows[0]) == CSV_HEADERS == (
        "Item #",
        "Description",
        "Status",
        "Pricing Tier",
        "Base Price",
        "Adjusted Price",
        "Replacement Source",
        "Total Replacement Price",
        "URL",
        "Confidence",
    )
    assert rows[1] == ["1", "Desk", "ESTIMATED", "EXACT_MATCH", "1.00", "1.00", "System Estimate", "1.00", "", "0.50"]
