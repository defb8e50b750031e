from __future__ import annotations

import json
from pathlib import Path

import pytest

from item_pricer.logging.error_log import ERROR_TYPES, ErrorLogBuffer, ErrorRecord

KEYS = {"timestamp", "file", "sheet", "row", "error_type", "message"}


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("inv.xlsx", "Sheet1", -1, "SERVICE_ERROR", "HTTP 500"))
    buf.append(ErrorRecord.create("inv.xlsx", "Sheet1", -1, "EXPORT_ERROR", "disk full"))
    path = buf.flush()
    assert path is not None and path.exists()
    assert path.parent == Path("logs")
    assert path.name.startswith("errors-") and path.suffix == ".log"
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    for raw in lines:
        assert set(json.loads(raw)) == KEYS
    assert len(buf) == 0


def test_flush_with_nothing_buffered_creates_no_file(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_multiple_flushes_append_to_same_file(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path)
    buf.append(ErrorRecord.create("f.csv", "", -1, "DECODE_ERROR", "bad bytes"))
    path = buf.flush()
    size1 = path.stat().st_size
    buf.append(ErrorRecord.create("f.csv", "", -1, "SERVICE_TIMEOUT", "timeout"))
    path2 = buf.flush()
    assert path == path2
    assert path2.stat().st_size > size1


def test_records_returns_copy(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path)
    buf.append(ErrorRecord.create("f.xlsx", "S", 3, "MAPPING_LOOP", "loop"))
    records = buf.records
    records.clear()
    assert len(buf.records) == 1


def test_record_uses_bound_file_and_sheet(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path)
    buf.bind("house.xlsx", "Living")
    rec = buf.record("SERVICE_ERROR", "HTTP 500")
    assert (rec.file, rec.sheet, rec.row) == ("house.xlsx", "Living", -1)

    override = buf.record("EXPORT_ERROR", "disk full", file="old.xlsx", sheet="Claims")
    assert (override.file, override.sheet) == ("old.xlsx", "Claims")

    buf.bind()
    assert buf.record("DECODE_ERROR", "bad bytes").file == ""
    assert buf.counts() == {"SERVICE_ERROR": 1, "EXPORT_ERROR": 1, "DECODE_ERROR": 1}


def test_record_rejects_unknown_error_type(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path)
    with pytest.raises(ValueError):
        buf.record("DB_ERROR", "nope")
    assert buf.records == []
    assert set(ERROR_TYPES) == {"DECODE_ERROR", "SERVICE_ERROR", "SERVICE_TIMEOUT", "MAPPING_LOOP", "EXPORT_ERROR"}
