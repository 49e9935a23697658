"""
tests/test_tabular_parser.py

Pytest unit tests for CSV / XLSX row extraction.

Workbooks are built in memory with openpyxl; nothing touches disk.
"""

from __future__ import annotations

import io
from datetime import date, datetime

import pytest
from openpyxl import Workbook

from uploads.errors import EmptyDatasetError, ParseError, ValidationError, ValidationErrorKind
from uploads.formats import FileFormat
from uploads.parser import EMPTY_HEADER, SourceType, parse_tabular_content, source_type_for


def _xlsx_bytes(rows: list[list[object]], *, extra_sheet: list[list[object]] | None = None) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    if extra_sheet is not None:
        other = workbook.create_sheet("Other")
        for row in extra_sheet:
            other.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestSourceType:
    def test_maps_tabular_formats(self) -> None:
        assert source_type_for(FileFormat.CSV) is SourceType.CSV
        assert source_type_for(FileFormat.XLSX) is SourceType.EXCEL

    @pytest.mark.parametrize("file_format", [FileFormat.PNG, FileFormat.PDF, FileFormat.DOCX])
    def test_rejects_non_tabular_formats(self, file_format: FileFormat) -> None:
        with pytest.raises(ValueError):
            source_type_for(file_format)


class TestCSV:
    def test_rows_follow_document_order(self) -> None:
        content = b"name,amount\nalice,10\nbob,20\ncarol,30\n"

        records = parse_tabular_content(content, SourceType.CSV)

        assert records == [
            {"name": "alice", "amount": "10"},
            {"name": "bob", "amount": "20"},
            {"name": "carol", "amount": "30"},
        ]

    def test_values_stay_strings(self) -> None:
        records = parse_tabular_content(b"id,flag\n007,true\n", SourceType.CSV)
        assert records == [{"id": "007", "flag": "true"}]

    def test_utf8_bom_is_stripped_from_first_header(self) -> None:
        records = parse_tabular_content("\ufeffname,city\nJosé,Málaga\n".encode("utf-8"), SourceType.CSV)
        assert records == [{"name": "José", "city": "Málaga"}]

    def test_quoted_fields_and_embedded_newlines(self) -> None:
        content = b'name,notes\n"Smith, J","line one\nline two"\n'

        records = parse_tabular_content(content, SourceType.CSV)

        assert records == [{"name": "Smith, J", "notes": "line one\nline two"}]

    def test_blank_rows_and_empty_cells_are_skipped(self) -> None:
        content = b"name,amount\n\nalice,\n,,\nbob,5\n"

        records = parse_tabular_content(content, SourceType.CSV)

        assert records == [{"name": "alice"}, {"name": "bob", "amount": "5"}]

    def test_duplicate_and_blank_headers_get_unique_keys(self) -> None:
        content = b"a,a,,a_1\n1,2,3,4\n"

        records = parse_tabular_content(content, SourceType.CSV)

        assert records == [{"a": "1", "a_1": "2", EMPTY_HEADER: "3", "a_1_1": "4"}]

    def test_header_only_is_empty_dataset(self) -> None:
        with pytest.raises(EmptyDatasetError) as exc_info:
            parse_tabular_content(b"name,amount\n", SourceType.CSV)

        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.kind is ValidationErrorKind.EMPTY_DATASET
        assert str(exc_info.value) == "File is empty or has no data"

    def test_empty_content_is_empty_dataset(self) -> None:
        with pytest.raises(EmptyDatasetError):
            parse_tabular_content(b"", SourceType.CSV)

    def test_invalid_utf8_is_parse_error(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_tabular_content(b"name,amount\n\xff\xfe,1\n", SourceType.CSV)

        assert str(exc_info.value) == "unparseable content"
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)


class TestExcel:
    def test_first_sheet_rows_keep_native_types(self) -> None:
        content = _xlsx_bytes(
            [
                ["name", "amount", "active"],
                ["alice", 10, True],
                ["bob", 2.5, False],
            ]
        )

        records = parse_tabular_content(content, SourceType.EXCEL)

        assert records == [
            {"name": "alice", "amount": 10, "active": True},
            {"name": "bob", "amount": 2.5, "active": False},
        ]

    def test_only_first_sheet_is_read(self) -> None:
        content = _xlsx_bytes([["k"], ["first"]], extra_sheet=[["k"], ["second"]])

        assert parse_tabular_content(content, SourceType.EXCEL) == [{"k": "first"}]

    def test_dates_become_iso_strings(self) -> None:
        content = _xlsx_bytes(
            [
                ["issued", "stamp"],
                [date(2026, 1, 31), datetime(2026, 2, 1, 9, 30)],
            ]
        )

        records = parse_tabular_content(content, SourceType.EXCEL)

        assert records[0]["issued"].startswith("2026-01-31")
        assert records[0]["stamp"] == "2026-02-01T09:30:00"

    def test_missing_cells_are_omitted(self) -> None:
        content = _xlsx_bytes([["a", "b", "c"], ["x", None, "z"], [None, None, None]])

        assert parse_tabular_content(content, SourceType.EXCEL) == [{"a": "x", "c": "z"}]

    def test_blank_header_cells(self) -> None:
        content = _xlsx_bytes([["a", None, "c"], [1, 2, 3]])

        assert parse_tabular_content(content, SourceType.EXCEL) == [{"a": 1, EMPTY_HEADER: 2, "c": 3}]

    def test_numeric_header_cells_use_their_display_text(self) -> None:
        content = _xlsx_bytes([[2026.0, 2.5, "name"], ["q1", "q2", "alice"]])

        assert parse_tabular_content(content, SourceType.EXCEL) == [{"2026": "q1", "2.5": "q2", "name": "alice"}]

    def test_empty_workbook_is_empty_dataset(self) -> None:
        with pytest.raises(EmptyDatasetError):
            parse_tabular_content(_xlsx_bytes([]), SourceType.EXCEL)

    def test_corrupt_archive_is_parse_error(self) -> None:
        with pytest.raises(ParseError):
            parse_tabular_content(b"PK\x03\x04 definitely not a workbook", SourceType.EXCEL)
