"""
uploads/parser.py

Turns validated CSV / XLSX bytes into ordered row records.

The first row of the first sheet is the header. Each following non-blank
row becomes a ``{column: value}`` mapping in document order. No schema
inference happens here: CSV values stay strings, workbook cells keep the
scalar type stored in the file.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any

from openpyxl import load_workbook

from uploads.errors import EmptyDatasetError, ParseError
from uploads.formats import FileFormat

RowRecord = dict[str, Any]

EMPTY_HEADER = "__EMPTY"


class SourceType(str, Enum):
    CSV = "csv"
    EXCEL = "excel"


_SOURCE_TYPE_BY_FORMAT: dict[FileFormat, SourceType] = {
    FileFormat.CSV: SourceType.CSV,
    FileFormat.XLSX: SourceType.EXCEL,
}


def source_type_for(file_format: FileFormat) -> SourceType:
    """
    Tabular source kind for a validated format.

    Raises:
        ValueError: if the format is not a tabular format.
    """

    try:
        return _SOURCE_TYPE_BY_FORMAT[file_format]
    except KeyError:
        raise ValueError(f"{file_format.name} is not a tabular format.") from None


def parse_tabular_content(content: bytes, source_type: SourceType) -> list[RowRecord]:
    """
    Parse tabular bytes into row records.

    Raises:
        ParseError: content cannot be read as the given source type.
        EmptyDatasetError: content parsed but holds no data rows.
    """

    if source_type is SourceType.CSV:
        rows = _read_csv_rows(content)
    elif source_type is SourceType.EXCEL:
        rows = _read_workbook_rows(content)
    else:
        raise AssertionError(f"Unhandled source type: {source_type!r}")

    records = _rows_to_records(rows)
    if not records:
        raise EmptyDatasetError()
    return records


def _read_csv_rows(content: bytes) -> list[list[Any]]:
    try:
        text = content.decode("utf-8-sig")
        return list(csv.reader(io.StringIO(text, newline="")))
    except UnicodeDecodeError as exc:
        raise ParseError() from exc
    except csv.Error as exc:
        raise ParseError() from exc


def _read_workbook_rows(content: bytes) -> list[list[Any]]:
    workbook = None
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        if not workbook.worksheets:
            return []
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    # openpyxl surfaces corrupt archives through many unrelated exception types.
    except Exception as exc:
        raise ParseError() from exc
    finally:
        if workbook is not None:
            workbook.close()


def _rows_to_records(rows: Sequence[Sequence[Any]]) -> list[RowRecord]:
    non_blank = [row for row in rows if not _is_blank_row(row)]
    if not non_blank:
        return []

    header = _build_header(non_blank[0])
    records: list[RowRecord] = []
    for row in non_blank[1:]:
        record: RowRecord = {}
        for key, value in zip(header, row):
            if _is_empty(value):
                continue
            record[key] = _json_safe(value)
        if record:
            records.append(record)
    return records


def _build_header(cells: Iterable[Any]) -> list[str]:
    header: list[str] = []
    used: set[str] = set()
    for cell in cells:
        base = EMPTY_HEADER if _is_empty(cell) else _header_text(cell)
        key = base
        suffix = 0
        while key in used:
            suffix += 1
            key = f"{base}_{suffix}"
        used.add(key)
        header.append(key)
    return header


def _header_text(cell: Any) -> str:
    # Workbooks store every number as a float; a header typed as 1 reads back as 1.0.
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    return str(_json_safe(cell))


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _is_blank_row(row: Sequence[Any]) -> bool:
    return all(value is None or (isinstance(value, str) and not value.strip()) for value in row)


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    return value
