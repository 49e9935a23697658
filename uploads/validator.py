"""
uploads/validator.py

Content-based upload validation.

The declared MIME type is only used as a cheap first filter and as the claim
to verify; the accepted type always comes from inspecting the bytes:

    1. Reject declared types outside the allow-list.
    2. CSV has no magic bytes, so the leading text must look delimited.
    3. OOXML formats (xlsx/docx/pptx) are ZIP containers; the ZIP signature
       is required and the declared subtype is trusted, because telling a
       workbook from a document needs the archive manifest, not the header.
    4. Everything else is sniffed with ``filetype`` and must be in the global
       catalog and agree with the declared type.

``validate_file_upload`` is pure: no I/O and no logging.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

import filetype

from uploads.errors import ValidationError, ValidationErrorKind
from uploads.formats import (
    ALL_ALLOWED_TYPES,
    ContentCheck,
    FileFormat,
    extension_for,
    normalize_mime_type,
)

SNIFF_WINDOW_BYTES = 4096
CSV_SAMPLE_BYTES = 1000
CSV_DELIMITER = ","
ZIP_SIGNATURE = b"PK"

_UNKNOWN = "unknown"


@dataclass(frozen=True)
class ValidatedFile:
    """
    Outcome of a successful content check.
    """

    detected_type: str
    expected_type: str
    extension: str
    file_format: FileFormat


def validate_file_upload(
    content: bytes,
    declared_type: str,
    allowed_types: Collection[str],
) -> ValidatedFile:
    """
    Prove that ``content`` is one of ``allowed_types`` and matches ``declared_type``.

    Raises:
        ValidationError: with ``kind`` describing why the upload was rejected
            and ``details`` carrying the declared type, detected type and
            allow-list where relevant.
    """

    data = bytes(content or b"")
    allowed = sorted(allowed_types)

    if declared_type not in allowed_types:
        raise ValidationError(
            ValidationErrorKind.DECLARED_TYPE_NOT_ALLOWED,
            f"File type not allowed. Allowed types: {', '.join(allowed)}",
            details={"declared_type": declared_type, "allowed_types": allowed},
        )

    declared_format = FileFormat.from_mime(declared_type)
    check = declared_format.content_check if declared_format else ContentCheck.SNIFFED

    if check is ContentCheck.DELIMITED_TEXT:
        return _validate_delimited_text(data, declared_type, declared_format)
    if check is ContentCheck.OOXML_CONTAINER:
        return _validate_ooxml_container(data, declared_type, declared_format)
    if check is ContentCheck.SNIFFED:
        return _validate_sniffed(data, declared_type)
    raise AssertionError(f"Unhandled content check: {check!r}")


def _validate_delimited_text(
    data: bytes,
    declared_type: str,
    declared_format: FileFormat,
) -> ValidatedFile:
    sample = data[:CSV_SAMPLE_BYTES]
    if not _looks_like_csv(sample):
        raise ValidationError(
            ValidationErrorKind.CONTENT_MISMATCH,
            "File content does not match declared CSV type",
            details={"declared_type": declared_type, "detected_type": _UNKNOWN},
        )

    return ValidatedFile(
        detected_type=declared_format.mime_type,
        expected_type=declared_type,
        extension=declared_format.extension,
        file_format=declared_format,
    )


def _looks_like_csv(sample: bytes) -> bool:
    # NUL bytes do not occur in text exports; they do in nearly every binary header.
    if b"\x00" in sample:
        return False

    text = sample.decode("utf-8", errors="replace")
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return False
    return CSV_DELIMITER in lines[0]


def _validate_ooxml_container(
    data: bytes,
    declared_type: str,
    declared_format: FileFormat,
) -> ValidatedFile:
    if data[:2] != ZIP_SIGNATURE:
        guessed = filetype.guess(data[:SNIFF_WINDOW_BYTES]) if data else None
        raise ValidationError(
            ValidationErrorKind.CONTENT_MISMATCH,
            f"File content does not match declared {declared_type} type",
            details={
                "declared_type": declared_type,
                "detected_type": guessed.mime if guessed is not None else _UNKNOWN,
            },
        )

    # A ZIP signature cannot tell xlsx, docx and pptx apart; trust the subtype.
    return ValidatedFile(
        detected_type=declared_format.mime_type,
        expected_type=declared_type,
        extension=declared_format.extension,
        file_format=declared_format,
    )


def _validate_sniffed(data: bytes, declared_type: str) -> ValidatedFile:
    guessed = filetype.guess(data[:SNIFF_WINDOW_BYTES]) if data else None
    if guessed is None:
        raise ValidationError(
            ValidationErrorKind.UNDETECTABLE_CONTENT,
            "Could not detect file type from content. File may be corrupted or invalid.",
            details={"declared_type": declared_type},
        )

    detected_type = guessed.mime
    if detected_type not in ALL_ALLOWED_TYPES:
        raise ValidationError(
            ValidationErrorKind.DETECTED_TYPE_NOT_ALLOWED,
            f"File content type not allowed: {detected_type}",
            details={
                "declared_type": declared_type,
                "detected_type": detected_type,
                "allowed_types": sorted(ALL_ALLOWED_TYPES),
            },
        )

    if normalize_mime_type(declared_type) != normalize_mime_type(detected_type):
        raise ValidationError(
            ValidationErrorKind.CONTENT_MISMATCH,
            "File content does not match declared type. Possible file spoofing attempt.",
            details={"declared_type": declared_type, "detected_type": detected_type},
        )

    detected_format = FileFormat.from_mime(detected_type)
    return ValidatedFile(
        detected_type=detected_type,
        expected_type=declared_type,
        extension=extension_for(detected_type),
        file_format=detected_format,
    )
