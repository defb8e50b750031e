from __future__ import annotations

import logging
import mimetypes
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import httpx

from ..errors import ServiceError
from ..models.config_models import ServiceConfig
from ..models.pricing_result import RawResultRecord

"""Pricing service client.

The pricing service is a black box: it takes a file (or a list of item
descriptions) plus a tolerance percentage and answers with one of three tagged
responses:

- sheet_selection      {sheets}
- mapping_required     {availableHeaders, missingFields}
- processing_complete  {processedRows, results}

Files go out as multipart form data, field mappings as `fieldMapping[<field>]`
form fields. Description batches go out as JSON. The client makes exactly one
attempt per call.
"""

__all__ = [
    "PricingRequest",
    "SheetSelectionResponse",
    "MappingRequiredResponse",
    "ProcessingCompleteResponse",
    "ServiceResponse",
    "PricingService",
    "HttpPricingService",
    "parse_service_response",
]

logger = logging.getLogger(__name__)

_TIMEOUT_STATUS_CODES = frozenset({408, 504})


@dataclass(frozen=True)
class PricingRequest:
    """One submission to the pricing service.

    Exactly one of file_path / item_descriptions is set.
    """
    tolerance_pct: int
    file_path: Path | None = None
    item_descriptions: tuple[str, ...] | None = None
    field_mapping: dict[str, str] | None = None
    selected_sheet: str | None = None

    def __post_init__(self) -> None:
        if (self.file_path is None) == (self.item_descriptions is None):
            raise ValueError("exactly one of file_path / item_descriptions is required")


@dataclass(frozen=True)
class SheetSelectionResponse:
    sheets: list[str]


@dataclass(frozen=True)
class MappingRequiredResponse:
    available_headers: list[str]
    missing_fields: list[str]


@dataclass(frozen=True)
class ProcessingCompleteResponse:
    processed_rows: int
    results: list[RawResultRecord] = field(default_factory=list)


ServiceResponse = SheetSelectionResponse | MappingRequiredResponse | ProcessingCompleteResponse


class PricingService(Protocol):
    async def process(self, request: PricingRequest) -> ServiceResponse: ...


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, Sequence) or isinstance(value, str):
        return []
    return [str(v) for v in value]


def parse_service_response(payload: Any) -> ServiceResponse:
    """Decode a service JSON body into a tagged response.

    A `{"data": {...}}` envelope is unwrapped. A body without a `type` tag but
    with `results` is read as processing_complete. Error bodies and unknown tags
    raise ServiceError.
    """
    if isinstance(payload, Mapping) and "type" not in payload and isinstance(payload.get("data"), Mapping):
        payload = payload["data"]
    if not isinstance(payload, Mapping):
        raise ServiceError(f"unexpected response body: {type(payload).__name__}")

    if payload.get("success") is False or ("error" in payload and "type" not in payload):
        message = payload.get("error") or payload.get("message") or "pricing service reported a failure"
        raise ServiceError(str(message))

    kind = payload.get("type")
    if kind is None and "results" in payload:
        kind = "processing_complete"

    if kind == "sheet_selection":
        return SheetSelectionResponse(sheets=_str_list(payload.get("sheets")))
    if kind == "mapping_required":
        return MappingRequiredResponse(
            available_headers=_str_list(payload.get("availableHeaders")),
            missing_fields=_str_list(payload.get("missingFields")),
        )
    if kind == "processing_complete":
        results = payload.get("results") or []
        if not isinstance(results, list):
            raise ServiceError("processing_complete without a results list")
        processed = payload.get("processedRows", len(results))
        try:
            processed_rows = int(processed)
        except (TypeError, ValueError):
            processed_rows = len(results)
        return ProcessingCompleteResponse(processed_rows=processed_rows, results=list(results))
    raise ServiceError(f"unknown response type: {kind!r}")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, Mapping):
        return str(body.get("error") or body.get("message") or response.reason_phrase)
    return response.reason_phrase


class HttpPricingService:
    """PricingService over HTTP (httpx.AsyncClient).

    Args:
        config: Service base URL, endpoint path and timeout.
        client: Pre-built client (tests pass one with httpx.MockTransport).
    """

    def __init__(self, config: ServiceConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.client = client or httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> HttpPricingService:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _form_fields(self, request: PricingRequest) -> dict[str, str]:
        data = {"tolerancePct": str(request.tolerance_pct)}
        if request.selected_sheet:
            data["selectedSheet"] = request.selected_sheet
        for name, header in (request.field_mapping or {}).items():
            data[f"fieldMapping[{name}]"] = header
        return data

    async def _post(self, request: PricingRequest) -> httpx.Response:
        path = self.config.process_path
        if request.file_path is not None:
            file_path = request.file_path
            content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
            with file_path.open("rb") as fh:
                files = {"file": (file_path.name, fh, content_type)}
                return await self.client.post(path, data=self._form_fields(request), files=files)
        body: dict[str, Any] = {
            "itemDescriptions": list(request.item_descriptions or ()),
            "tolerancePct": request.tolerance_pct,
        }
        if request.field_mapping:
            body["fieldMapping"] = dict(request.field_mapping)
        return await self.client.post(path, json=body)

    async def process(self, request: PricingRequest) -> ServiceResponse:
        """Submit one request. Raises ServiceError on transport, HTTP or payload failure."""
        try:
            response = await self._post(request)
        except httpx.TimeoutException as e:
            logger.error("pricing service timed out: %s", e)
            raise ServiceError.timed_out(type(e).__name__) from e
        except httpx.HTTPError as e:
            logger.error("pricing service request failed: %s", e)
            raise ServiceError(f"Pricing service request failed: {e}") from e
        except OSError as e:
            raise ServiceError(f"cannot read upload {request.file_path}: {e}") from e

        if response.status_code in _TIMEOUT_STATUS_CODES:
            raise ServiceError.timed_out(f"HTTP {response.status_code}")
        if response.status_code >= 400:
            message = _error_message(response)
            logger.error("pricing service HTTP %d: %s", response.status_code, message)
            raise ServiceError(
                f"Pricing service error (HTTP {response.status_code}): {message}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise ServiceError("pricing service returned invalid JSON") from e
        return parse_service_response(payload)
