# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from item_pricer.logging.init import APP_LOGGER_NAME, reset_logging
from item_pricer.models.pricing_result import PricingResult, PricingTier, ResultStatus
from item_pricer.services.pricing_client import PricingRequest, ServiceResponse


@pytest.fixture(autouse=True)
def _restore_app_logger():
    """Undo setup_logging() so caplog sees records again in later tests."""
    yield
    logger = logging.getLogger(APP_LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("PRICER_SERVICE_URL", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """service:
  base_url: http://pricing.test/api
  process_path: /enhanced/process-enhanced
  timeout_seconds: 30
tolerance:
  options: [10, 20, 30]
  default: 20
table:
  page_size: 10
  page_size_options: [10, 25, 50, 100]
detection:
  max_scan_rows: 20
export:
  output_directory: ./output
  csv_min_price: 1.00
logs_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "pricer.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def banner_rows() -> list[list[Any]]:
    """Letterhead, blank spacer, header, two items split by a blank row."""
    return [
        ["ACME INSURANCE"],
        [],
        ["Item #", "Description", "Qty", "Price"],
        ["1", "Sofa", "2", "500"],
        [],
        ["2", "Lamp", "1", "50"],
    ]


def write_xlsx(path: Path, sheets: dict[str, list[list[Any]]]) -> Path:
    """Build a workbook with openpyxl; [] rows stay blank."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


@pytest.fixture()
def xlsx_factory(tmp_path: Path) -> Callable[..., Path]:
    def _make(sheets: dict[str, list[list[Any]]], name: str = "inventory.xlsx") -> Path:
        return write_xlsx(tmp_path / name, sheets)
    return _make


def make_result(
    item_number: int = 1,
    description: str = "Sofa",
    *,
    status: ResultStatus | None = ResultStatus.FOUND,
    source: str = "walmart.com",
    unit_price: float | None = 100.0,
    total_price: float | None = None,
    url: str | None = None,
    tier: PricingTier = PricingTier.EXACT_MATCH,
    **extra: Any,
) -> PricingResult:
    return PricingResult(
        item_number=item_number,
        description=description,
        status=status,
        source=source,
        unit_price=unit_price,
        total_price=total_price,
        url=url,
        pricing_tier=tier,
        **extra,
    )


class FakePricingService:
    """Scripted PricingService: returns (or raises) the queued responses in order."""

    def __init__(self, *responses: ServiceResponse | Exception) -> None:
        self.responses = list(responses)
        self.requests: list[PricingRequest] = []

    async def process(self, request: PricingRequest) -> ServiceResponse:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("unexpected pricing request")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def result_factory() -> Callable[..., PricingResult]:
    return make_result


@pytest.fixture()
def fake_service_cls() -> type[FakePricingService]:
    return FakePricingService
