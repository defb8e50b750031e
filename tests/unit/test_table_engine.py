from __future__ import annotations

import pandas as pd
import pytest

from item_pricer.models.pricing_result import PricingTier, ResultStatus
from item_pricer.services.table_engine import ResultsTableEngine, calculated_total


@pytest.fixture()
def forty_seven(result_factory):
    results = []
    for i in range(1, 48):
        status = ResultStatus.FOUND if i % 2 else ResultStatus.ESTIMATED
        results.append(result_factory(i, f"Item {i}", status=status, unit_price=float(i)))
    return results


def test_pagination_over_47_results(forty_seven):
    engine = ResultsTableEngine(forty_seven)
    assert engine.page_count() == 5

    assert engine.change_page(5)
    page = engine.page()
    assert len(page.rows) == 7
    assert (page.start_index, page.end_index) == (40, 47)
    assert page.has_pagination

    assert engine.change_page(6) is False
    assert engine.state.current_page == 5

    assert engine.change_page_size(25)
    assert engine.page_count() == 2
    assert engine.state.current_page == 1


def test_unconfigured_page_size_is_rejected(forty_seven):
    engine = ResultsTableEngine(forty_seven)
    assert engine.change_page_size(7) is False
    assert engine.state.page_size == 10
    with pytest.raises(ValueError):
        ResultsTableEngine(forty_seven, page_size=7)


def test_empty_results_have_no_pages():
    engine = ResultsTableEngine([])
    assert engine.page_count() == 0
    assert engine.page().rows == []
    assert engine.change_page(1) is False


def test_search_matches_description_source_and_status(result_factory):
    engine = ResultsTableEngine([
        result_factory(1, "Leather Sofa", source="wayfair.com"),
        result_factory(2, "Floor lamp", source="target.com"),
        result_factory(3, "Desk", status=ResultStatus.MANUAL_REVIEW, source="", unit_price=None),
    ])
    engine.set_search("SOFA")
    assert [r.item_number for r in engine.filtered] == [1]
    engine.set_search("target")
    assert [r.item_number for r in engine.filtered] == [2]
    engine.set_search("manual")
    assert [r.item_number for r in engine.filtered] == [3]


def test_column_filters_and_clear(forty_seven):
    engine = ResultsTableEngine(forty_seven)
    engine.change_page(3)
    engine.set_column_filter("status", "estimated")
    assert engine.filtered_count == 23
    assert engine.state.current_page == 1
    assert all(r.status is ResultStatus.ESTIMATED for r in engine.filtered)

    engine.set_search("Item 4")
    assert {r.item_number for r in engine.filtered} == {4, 40, 42, 44, 46}

    engine.clear_filters()
    assert engine.filtered_count == 47
    assert engine.state.active_filters() == {}
    assert engine.state.search_term == ""


def test_unknown_filter_or_sort_column_raises(forty_seven):
    engine = ResultsTableEngine(forty_seven)
    with pytest.raises(ValueError):
        engine.set_column_filter("url", "x")
    with pytest.raises(ValueError):
        engine.sort("nope")


def test_unique_column_values_skip_blank_and_na(result_factory):
    engine = ResultsTableEngine([
        result_factory(1, depreciation_category="Furniture"),
        result_factory(2, depreciation_category="N/A"),
        result_factory(3, depreciation_category=""),
        result_factory(4, depreciation_category="Electronics"),
        result_factory(5, depreciation_category="Furniture"),
    ])
    assert engine.unique_column_values("depCat") == ["Electronics", "Furniture"]


def test_sort_is_stable_and_toggles(result_factory):
    prices = [30.0, 10.0, 30.0, None, 10.0]
    engine = ResultsTableEngine([result_factory(i, unit_price=p) for i, p in enumerate(prices, 1)])
    engine.change_page_size(25)

    engine.sort("adjustedPrice")
    assert engine.state.sort_column == "adjusted_price"
    assert [r.item_number for r in engine.filtered] == [4, 2, 5, 1, 3]

    engine.sort("adjustedPrice")
    assert engine.state.sort_direction == "desc"
    assert [r.item_number for r in engine.filtered] == [1, 3, 2, 5, 4]


def test_sort_survives_filter_changes(result_factory):
    engine = ResultsTableEngine([
        result_factory(1, "b"), result_factory(2, "c"), result_factory(3, "a"),
    ])
    engine.sort("description")
    engine.set_search("")
    assert [r.description for r in engine.filtered] == ["a", "b", "c"]


def test_set_results_keeps_filters(result_factory):
    engine = ResultsTableEngine([result_factory(1, "Sofa")])
    engine.set_search("lamp")
    engine.set_results([result_factory(1, "Lamp"), result_factory(2, "Sofa")])
    assert [r.description for r in engine.filtered] == ["Lamp"]
    assert engine.total_count == 2


def test_rendered_row_values(result_factory):
    r = result_factory(
        3, "", unit_price=100.0, quantity=2.0, depreciation_amount=0.0,
        depreciation_category="Furniture", tier=PricingTier.WEB_SEARCH,
    )
    engine = ResultsTableEngine([r])
    row = engine.current_page_rows()[0]
    assert row.description == "Unknown Item"
    assert row.status == "Found"
    assert row.replacement_price == "$100.00"
    assert row.depreciation_amount == "$0.00"
    assert row.total_price == "$200.00"
    assert row.pricing_tier == "Web Search"


def test_calculated_total_subtracts_depreciation(result_factory):
    r = result_factory(unit_price=50.0, quantity=3.0, depreciation_amount=5.0)
    assert calculated_total(r) == 135.0
    assert calculated_total(result_factory(unit_price=None)) == 0.0


def test_page_frame(forty_seven):
    engine = ResultsTableEngine(forty_seven)
    frame = engine.page_frame()
    assert isinstance(frame, pd.DataFrame)
    assert len(frame) == 10
    assert list(frame["item_number"]) == list(range(1, 11))
    assert "replacement_price" in frame.columns
