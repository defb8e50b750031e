from __future__ import annotations

"""Error taxonomy for the spreadsheet pricing pipeline.

- DecodeError: file could not be parsed as a workbook / CSV (fatal for the run)
- ValidationError: user input problem (mapping, tolerance); recoverable
- ServiceError: pricing service failure, `timeout=True` for timeouts
- ExportError: export could not be produced
"""

__all__ = [
    "PricerError",
    "DecodeError",
    "ValidationError",
    "PipelineBusyError",
    "ServiceError",
    "ExportError",
    "ExportCancelled",
]

TIMEOUT_MESSAGE = (
    "Processing timeout - the inventory is large and needs more time. "
    "Please try again."
)


class PricerError(Exception):
    """Base exception for all pricing pipeline errors."""


class DecodeError(PricerError):
    """Raised when an input file cannot be decoded into raw tables."""


class ValidationError(PricerError):
    """Raised for recoverable input problems (missing mapping, bad tolerance)."""

    def __init__(self, message: str, missing_fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing_fields = list(missing_fields or [])


class PipelineBusyError(ValidationError):
    """Raised when a submission is requested while another one is in flight."""


class ServiceError(PricerError):
    """Raised when the pricing service fails or times out."""

    def __init__(self, message: str, *, timeout: bool = False, status_code: int | None = None) -> None:
        super().__init__(message)
        self.timeout = timeout
        self.status_code = status_code

    @classmethod
    def timed_out(cls, detail: str = "") -> ServiceError:
        message = TIMEOUT_MESSAGE if not detail else f"{TIMEOUT_MESSAGE} ({detail})"
        return cls(message, timeout=True)


class ExportError(PricerError):
    """Raised when an export workbook / CSV cannot be produced."""


class ExportCancelled(ExportError):
    """Raised when an export is cancelled mid-run. No output is written."""
