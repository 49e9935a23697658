from __future__ import annotations

import io
import unittest
import zipfile

from uploads.errors import ValidationError, ValidationErrorKind
from uploads.formats import (
    ALL_ALLOWED_TYPES,
    IMAGE_ALLOWED_TYPES,
    IMPORT_ALLOWED_TYPES,
    TEMPLATE_ALLOWED_TYPES,
    FileFormat,
)
from uploads.validator import validate_file_upload

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 64
PDF_BYTES = b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n" + b"1 0 obj\n<<>>\nendobj\n"
XLSX_MIME = FileFormat.XLSX.mime_type
DOCX_MIME = FileFormat.DOCX.mime_type


def _zip_bytes() -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
    return buffer.getvalue()


class TestDeclaredTypeFilter(unittest.TestCase):
    def test_rejects_declared_type_outside_allow_list(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(PNG_BYTES, "image/png", IMPORT_ALLOWED_TYPES)

        self.assertEqual(ctx.exception.kind, ValidationErrorKind.DECLARED_TYPE_NOT_ALLOWED)
        self.assertEqual(ctx.exception.details["declared_type"], "image/png")
        self.assertEqual(ctx.exception.details["allowed_types"], sorted(IMPORT_ALLOWED_TYPES))

    def test_declared_type_is_checked_before_content(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(b"", "application/x-msdownload", ALL_ALLOWED_TYPES)

        self.assertEqual(ctx.exception.kind, ValidationErrorKind.DECLARED_TYPE_NOT_ALLOWED)

    def test_declared_type_must_match_allow_list_exactly(self) -> None:
        for declared in ("text/csv; charset=utf-8", "TEXT/CSV", " text/csv"):
            with self.subTest(declared=declared):
                with self.assertRaises(ValidationError) as ctx:
                    validate_file_upload(b"a,b\n1,2\n", declared, IMPORT_ALLOWED_TYPES)

                self.assertEqual(ctx.exception.kind, ValidationErrorKind.DECLARED_TYPE_NOT_ALLOWED)

    def test_error_serializes_for_clients(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(PNG_BYTES, "text/html", IMAGE_ALLOWED_TYPES)

        payload = ctx.exception.to_dict()
        self.assertEqual(payload["code"], "declared_type_not_allowed")
        self.assertIn("File type not allowed", payload["message"])
        self.assertIn("details", payload)


class TestSniffedFormats(unittest.TestCase):
    def test_accepts_png_declared_as_png(self) -> None:
        result = validate_file_upload(PNG_BYTES, "image/png", IMAGE_ALLOWED_TYPES)

        self.assertEqual(result.detected_type, "image/png")
        self.assertEqual(result.expected_type, "image/png")
        self.assertEqual(result.extension, "png")
        self.assertIs(result.file_format, FileFormat.PNG)

    def test_jpeg_extension_is_jpg(self) -> None:
        result = validate_file_upload(JPEG_BYTES, "image/jpeg", IMAGE_ALLOWED_TYPES)

        self.assertEqual(result.detected_type, "image/jpeg")
        self.assertEqual(result.extension, "jpg")

    def test_accepts_pdf_for_templates(self) -> None:
        result = validate_file_upload(PDF_BYTES, "application/pdf", TEMPLATE_ALLOWED_TYPES)

        self.assertIs(result.file_format, FileFormat.PDF)

    def test_png_content_declared_as_jpeg_is_a_mismatch(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(PNG_BYTES, "image/jpeg", IMAGE_ALLOWED_TYPES)

        self.assertEqual(ctx.exception.kind, ValidationErrorKind.CONTENT_MISMATCH)
        self.assertEqual(ctx.exception.details["declared_type"], "image/jpeg")
        self.assertEqual(ctx.exception.details["detected_type"], "image/png")

    def test_undetectable_content_is_rejected(self) -> None:
        for declared in sorted(IMAGE_ALLOWED_TYPES | {"application/pdf"}):
            with self.subTest(declared=declared):
                with self.assertRaises(ValidationError) as ctx:
                    validate_file_upload(b"\x01\x02\x03 not a real file", declared, TEMPLATE_ALLOWED_TYPES)
                self.assertEqual(ctx.exception.kind, ValidationErrorKind.UNDETECTABLE_CONTENT)

    def test_empty_content_is_undetectable(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(b"", "image/png", IMAGE_ALLOWED_TYPES)

        self.assertEqual(ctx.exception.kind, ValidationErrorKind.UNDETECTABLE_CONTENT)

    def test_detected_type_outside_catalog_is_rejected(self) -> None:
        gif_bytes = b"GIF89a" + b"\x00" * 32

        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(gif_bytes, "image/png", IMAGE_ALLOWED_TYPES)

        self.assertEqual(ctx.exception.kind, ValidationErrorKind.DETECTED_TYPE_NOT_ALLOWED)
        self.assertEqual(ctx.exception.details["detected_type"], "image/gif")


class TestOOXMLContainers(unittest.TestCase):
    def test_zip_container_is_accepted_as_declared_subtype(self) -> None:
        result = validate_file_upload(_zip_bytes(), XLSX_MIME, IMPORT_ALLOWED_TYPES)

        self.assertEqual(result.detected_type, XLSX_MIME)
        self.assertEqual(result.extension, "xlsx")
        self.assertIs(result.file_format, FileFormat.XLSX)

    def test_zip_signature_cannot_distinguish_ooxml_subtypes(self) -> None:
        # A word document declared as a workbook still passes the header check.
        result = validate_file_upload(_zip_bytes(), DOCX_MIME, TEMPLATE_ALLOWED_TYPES)

        self.assertEqual(result.detected_type, DOCX_MIME)

    def test_non_zip_content_declared_as_xlsx_is_a_mismatch(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(PNG_BYTES, XLSX_MIME, IMPORT_ALLOWED_TYPES)

        self.assertEqual(ctx.exception.kind, ValidationErrorKind.CONTENT_MISMATCH)
        self.assertEqual(ctx.exception.details["detected_type"], "image/png")

    def test_plain_text_declared_as_xlsx_reports_unknown(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(b"name,amount\nalice,10\n", XLSX_MIME, IMPORT_ALLOWED_TYPES)

        self.assertEqual(ctx.exception.details["detected_type"], "unknown")


class TestDelimitedText(unittest.TestCase):
    def test_accepts_comma_separated_text(self) -> None:
        result = validate_file_upload(b"name,amount\nalice,10\n", "text/csv", IMPORT_ALLOWED_TYPES)

        self.assertEqual(result.detected_type, "text/csv")
        self.assertEqual(result.extension, "csv")
        self.assertIs(result.file_format, FileFormat.CSV)

    def test_leading_blank_lines_are_ignored(self) -> None:
        result = validate_file_upload(b"\n\n  \nname,amount\n", "text/csv", IMPORT_ALLOWED_TYPES)

        self.assertIs(result.file_format, FileFormat.CSV)

    def test_first_line_without_comma_is_a_mismatch(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(b"just some prose\nwith, a comma later\n", "text/csv", IMPORT_ALLOWED_TYPES)

        self.assertEqual(ctx.exception.kind, ValidationErrorKind.CONTENT_MISMATCH)
        self.assertEqual(ctx.exception.details["detected_type"], "unknown")

    def test_binary_content_declared_as_csv_is_a_mismatch(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_file_upload(PNG_BYTES + b",", "text/csv", IMPORT_ALLOWED_TYPES)

        self.assertEqual(ctx.exception.kind, ValidationErrorKind.CONTENT_MISMATCH)

    def test_empty_csv_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            validate_file_upload(b"", "text/csv", IMPORT_ALLOWED_TYPES)

    def test_only_first_sample_is_inspected(self) -> None:
        content = b"a,b\n" + b"x" * 5000 + b"\x00"

        result = validate_file_upload(content, "text/csv", IMPORT_ALLOWED_TYPES)

        self.assertIs(result.file_format, FileFormat.CSV)


class TestValidatorTotality(unittest.TestCase):
    def test_every_input_either_validates_or_raises_validation_error(self) -> None:
        samples = [b"", b"\x00", PNG_BYTES, JPEG_BYTES, PDF_BYTES, _zip_bytes(), b"a,b\n1,2\n", b"\xff" * 10]
        declared_types = sorted(ALL_ALLOWED_TYPES) + ["", "image/jpg", "application/octet-stream"]

        for content in samples:
            for declared in declared_types:
                with self.subTest(content=content[:8], declared=declared):
                    try:
                        result = validate_file_upload(content, declared, ALL_ALLOWED_TYPES)
                    except ValidationError as exc:
                        self.assertIsInstance(exc.kind, ValidationErrorKind)
                    else:
                        self.assertIn(result.detected_type, ALL_ALLOWED_TYPES)


if __name__ == "__main__":
    unittest.main()
