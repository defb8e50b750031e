from __future__ import annotations

import csv
import io
import logging
import math
from pathlib import Path
from typing import Any

import pandas as pd

from ..errors import DecodeError
from ..models.raw_table import RawTable, make_raw_table

"""Workbook / CSV decoding into RawTables.

Every sheet is read without header interpretation: header=None, all cells as
objects, no NA conversion ("NA" stays the string "NA"). Blank rows and leading
banner rows are kept so the row aligner can reproduce the original layout.
Empty cells become "".

CSV files are read with the csv module rather than pandas: rows may be ragged
(banner rows with a single cell) and that shape has to survive.
"""

__all__ = [
    "EXCEL_SUFFIXES",
    "CSV_SUFFIXES",
    "IMAGE_SUFFIXES",
    "is_image_file",
    "read_workbook",
    "list_sheet_names",
]

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = frozenset({".xlsx", ".xlsm", ".xls"})
CSV_SUFFIXES = frozenset({".csv"})
IMAGE_SUFFIXES = frozenset({".png", ".jpg", ".jpeg", ".webp", ".heic"})

_TEXT_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")


def is_image_file(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_SUFFIXES


def _clean_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    if value is pd.NaT:
        return ""
    return value


def _frame_to_table(df: pd.DataFrame) -> RawTable:
    return make_raw_table(
        [_clean_cell(v) for v in row] for row in df.itertuples(index=False, name=None)
    )


def _read_excel(path: Path) -> dict[str, RawTable]:
    try:
        xls = pd.ExcelFile(path)
    except ImportError as e:
        # .xls needs the optional xlrd engine
        raise DecodeError(f"cannot read {path.name}: {e}") from e
    except Exception as e:  # noqa: BLE001 - any parser failure is a decode failure
        raise DecodeError(f"cannot open workbook {path.name}: {e}") from e

    tables: dict[str, RawTable] = {}
    with xls:
        for name in xls.sheet_names:
            try:
                df = xls.parse(
                    name,
                    header=None,
                    dtype=object,
                    keep_default_na=False,
                    na_filter=False,
                )
            except Exception as e:  # noqa: BLE001
                raise DecodeError(f"cannot read sheet {name!r} of {path.name}: {e}") from e
            tables[str(name)] = _frame_to_table(df)
            logger.debug("decoded sheet=%s rows=%d", name, len(tables[str(name)]))
    if not tables:
        raise DecodeError(f"workbook {path.name} has no sheets")
    return tables


def _decode_text(raw: bytes) -> str:
    for encoding in _TEXT_ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise DecodeError("cannot decode text file")  # pragma: no cover (latin-1 always decodes)


def _read_csv(path: Path) -> dict[str, RawTable]:
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise DecodeError(f"cannot read {path.name}: {e}") from e
    text = _decode_text(raw).replace("\x00", "")
    try:
        rows = list(csv.reader(io.StringIO(text, newline="")))
    except csv.Error as e:
        raise DecodeError(f"malformed csv {path.name}: {e}") from e
    # CSV carries one sheet, named after the file
    return {path.stem: make_raw_table(rows)}


def read_workbook(path: Path) -> dict[str, RawTable]:
    """Decode a spreadsheet or CSV into RawTables keyed by sheet name.

    Sheet order follows the workbook. Raises DecodeError for missing files,
    unsupported extensions and unparseable content.
    """
    path = Path(path)
    if not path.exists():
        raise DecodeError(f"file not found: {path}")
    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return _read_excel(path)
    if suffix in CSV_SUFFIXES:
        return _read_csv(path)
    raise DecodeError(f"unsupported file type: {suffix or path.name}")


def list_sheet_names(path: Path) -> list[str]:
    return list(read_workbook(path))
