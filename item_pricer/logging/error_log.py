from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from item_pricer.models.error_record import ErrorRecord

"""Error log buffering.

- JSON Lines, fixed schema (ErrorRecord)
- One file per run: `<logs_dir>/errors-YYYYMMDD-HHMMSS.log` (UTC), created lazily
- Records are buffered and written on flush()
- bind() sets the file / sheet that record() stamps on new records; the
  pipeline rebinds whenever its session moves to another file or sheet
"""

__all__ = [
    "ERROR_TYPES",
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

ERROR_TYPES = (
    "DECODE_ERROR",
    "SERVICE_ERROR",
    "SERVICE_TIMEOUT",
    "MAPPING_LOOP",
    "EXPORT_ERROR",
)


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends them as JSON Lines.

    Single pipeline per session, so no locking.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._file_path: Path | None = None
        self._file = ""
        self._sheet = ""

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    @property
    def source(self) -> tuple[str, str]:
        """Currently bound (file, sheet)."""
        return self._file, self._sheet

    def bind(self, file: str = "", sheet: str = "") -> None:
        """Set the file / sheet stamped on records created by record()."""
        self._file = file
        self._sheet = sheet

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def record(
        self,
        error_type: str,
        message: str,
        *,
        row: int = -1,
        file: str | None = None,
        sheet: str | None = None,
    ) -> ErrorRecord:
        """Create, buffer and return a record for the bound file / sheet.

        Explicit file / sheet arguments override the bound ones. Raises
        ValueError for an error_type outside ERROR_TYPES.
        """
        if error_type not in ERROR_TYPES:
            raise ValueError(f"unknown error_type: {error_type!r}")
        rec = ErrorRecord.create(
            self._file if file is None else file,
            self._sheet if sheet is None else sheet,
            row,
            error_type,
            message,
        )
        self._records.append(rec)
        return rec

    def counts(self) -> dict[str, int]:
        """Buffered records per error_type."""
        return dict(Counter(r.error_type for r in self._records))

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records. Returns the log path, or None when nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
