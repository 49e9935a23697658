"""
tests/test_secure_naming.py

Pytest unit tests for storage naming and display-name sanitization.

Coverage
--------
- Random UUID filenames with the validated extension
- Tenant-scoped storage paths and segment checks
- Storage path validation against allowed roots
- Display name sanitization bounds and fallbacks
"""

from __future__ import annotations

import re

import pytest

from uploads.errors import StoragePathError
from uploads.formats import FileFormat
from uploads.naming import (
    MAX_DISPLAY_NAME_LENGTH,
    MAX_PATH_LENGTH,
    extract_display_extension,
    generate_secure_filename,
    generate_storage_path,
    sanitize_display_name,
    validate_storage_path,
)

UUID_NAME = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}\.(?P<ext>[a-z]+)$")


# ---------------------------------------------------------------------------
# generate_secure_filename / generate_storage_path
# ---------------------------------------------------------------------------


class TestSecureFilename:
    @pytest.mark.parametrize(
        ("mime_type", "extension"),
        [
            ("text/csv", "csv"),
            (FileFormat.XLSX.mime_type, "xlsx"),
            ("image/jpeg", "jpg"),
            ("image/jpg", "jpg"),
            ("application/x-unknown", "bin"),
        ],
    )
    def test_uses_extension_of_validated_type(self, mime_type: str, extension: str) -> None:
        match = UUID_NAME.match(generate_secure_filename(mime_type))

        assert match is not None
        assert match.group("ext") == extension

    def test_names_are_unique(self) -> None:
        names = {generate_secure_filename("text/csv") for _ in range(200)}
        assert len(names) == 200


class TestStoragePath:
    def test_path_layout(self) -> None:
        path = generate_storage_path("file_imports", "tenant-42", "text/csv")

        bucket, tenant, filename = path.split("/")
        assert bucket == "file_imports"
        assert tenant == "tenant-42"
        assert UUID_NAME.match(filename)

    def test_repeated_calls_never_collide(self) -> None:
        first = generate_storage_path("file_imports", "tenant-42", "text/csv")
        second = generate_storage_path("file_imports", "tenant-42", "text/csv")
        assert first != second

    def test_generated_paths_pass_validation(self) -> None:
        path = generate_storage_path("file_imports", "tenant_1", FileFormat.XLSX.mime_type)
        validate_storage_path(path, expected_root="file_imports")

    @pytest.mark.parametrize("tenant_id", ["", "../other", "a/b", "tenant 1", "t\\x"])
    def test_rejects_unsafe_tenant_segment(self, tenant_id: str) -> None:
        with pytest.raises(ValueError):
            generate_storage_path("file_imports", tenant_id, "text/csv")

    def test_rejects_unsafe_bucket_segment(self) -> None:
        with pytest.raises(ValueError):
            generate_storage_path("file_imports/..", "tenant", "text/csv")


# ---------------------------------------------------------------------------
# validate_storage_path
# ---------------------------------------------------------------------------


class TestValidateStoragePath:
    def test_accepts_allowed_root(self) -> None:
        validate_storage_path("certificates/tenant/abc.pdf")

    def test_rejects_empty_path(self) -> None:
        with pytest.raises(StoragePathError) as exc_info:
            validate_storage_path("")
        assert exc_info.value.code == "INVALID_STORAGE_PATH"

    def test_rejects_overlong_path(self) -> None:
        path = "file_imports/" + "a" * MAX_PATH_LENGTH

        with pytest.raises(StoragePathError) as exc_info:
            validate_storage_path(path)
        assert exc_info.value.details["max_length"] == MAX_PATH_LENGTH

    def test_rejects_unknown_root(self) -> None:
        with pytest.raises(StoragePathError) as exc_info:
            validate_storage_path("secrets/tenant/file.csv")
        assert exc_info.value.details["root"] == "secrets"

    def test_rejects_unexpected_root(self) -> None:
        with pytest.raises(StoragePathError):
            validate_storage_path("exports/tenant/file.csv", expected_root="file_imports")

    @pytest.mark.parametrize(
        "path",
        [
            "file_imports/../etc/passwd",
            "file_imports/./file.csv",
            "file_imports//file.csv",
            "file_imports/tenant\\file.csv",
        ],
    )
    def test_rejects_relative_or_empty_segments(self, path: str) -> None:
        with pytest.raises(StoragePathError):
            validate_storage_path(path)


# ---------------------------------------------------------------------------
# sanitize_display_name
# ---------------------------------------------------------------------------


class TestSanitizeDisplayName:
    @pytest.mark.parametrize("name", [None, ""])
    def test_missing_name_becomes_unnamed(self, name: str | None) -> None:
        assert sanitize_display_name(name) == "unnamed"

    def test_strips_directories(self) -> None:
        assert sanitize_display_name("../../etc/passwd") == "passwd"
        assert sanitize_display_name("C:\\Users\\me\\report.xlsx") == "report.xlsx"

    def test_replaces_unsafe_characters(self) -> None:
        assert sanitize_display_name("Q3 report (final)!.csv") == "Q3_report__final__.csv"

    def test_keeps_safe_names_unchanged(self) -> None:
        assert sanitize_display_name("sales-2026_v2.csv") == "sales-2026_v2.csv"

    def test_trailing_separator_becomes_unnamed(self) -> None:
        assert sanitize_display_name("folder/") == "unnamed"

    def test_truncation_preserves_extension(self) -> None:
        result = sanitize_display_name("a" * 400 + ".xlsx")

        assert len(result) == MAX_DISPLAY_NAME_LENGTH
        assert result.endswith(".xlsx")

    def test_truncation_without_extension(self) -> None:
        result = sanitize_display_name("b" * 400)
        assert result == "b" * MAX_DISPLAY_NAME_LENGTH

    @pytest.mark.parametrize(
        "name",
        ["", "x", "../" * 100, "\u00e9t\u00e9 \u2603.csv", "a.b.c" * 200, "/" * 10, "name." + "e" * 300],
    )
    def test_output_is_bounded_and_safe(self, name: str) -> None:
        result = sanitize_display_name(name)

        assert 1 <= len(result) <= MAX_DISPLAY_NAME_LENGTH
        assert re.fullmatch(r"[A-Za-z0-9._-]+", result)

    def test_custom_max_length(self) -> None:
        assert sanitize_display_name("abcdefghij.csv", max_length=8) == "abcd.csv"


class TestDisplayExtension:
    def test_lower_cases_extension(self) -> None:
        assert extract_display_extension("Report.XLSX") == "xlsx"

    def test_no_extension(self) -> None:
        assert extract_display_extension("README") is None
