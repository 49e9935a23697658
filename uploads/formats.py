"""
uploads/formats.py

Closed catalog of the upload formats the service accepts.

Every branch that depends on a file's type (content verification, storage
extension, tabular source kind) is driven by ``FileFormat`` so a new format
cannot be added without deciding how each of those points handles it.
"""

from __future__ import annotations

from enum import Enum


class ContentCheck(str, Enum):
    """
    Strategy used to prove that content matches a declared format.
    """

    SNIFFED = "sniffed"
    OOXML_CONTAINER = "ooxml_container"
    DELIMITED_TEXT = "delimited_text"


class FileFormat(Enum):
    PNG = ("image/png", "png", "PNG image", ContentCheck.SNIFFED)
    JPEG = ("image/jpeg", "jpg", "JPEG image", ContentCheck.SNIFFED)
    WEBP = ("image/webp", "webp", "WebP image", ContentCheck.SNIFFED)
    PDF = ("application/pdf", "pdf", "PDF document", ContentCheck.SNIFFED)
    DOCX = (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "docx",
        "Word document",
        ContentCheck.OOXML_CONTAINER,
    )
    PPTX = (
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "pptx",
        "PowerPoint presentation",
        ContentCheck.OOXML_CONTAINER,
    )
    XLSX = (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "xlsx",
        "Excel spreadsheet",
        ContentCheck.OOXML_CONTAINER,
    )
    CSV = ("text/csv", "csv", "CSV file", ContentCheck.DELIMITED_TEXT)

    def __init__(self, mime_type: str, extension: str, description: str, content_check: ContentCheck) -> None:
        self.mime_type = mime_type
        self.extension = extension
        self.description = description
        self.content_check = content_check

    @classmethod
    def from_mime(cls, mime_type: str | None) -> FileFormat | None:
        """
        Look up a format by MIME type after normalization; ``None`` if unknown.
        """

        if not mime_type:
            return None
        return _FORMATS_BY_MIME.get(normalize_mime_type(mime_type))


_MIME_ALIASES: dict[str, str] = {
    "image/jpg": "image/jpeg",
}

_FORMATS_BY_MIME: dict[str, FileFormat] = {fmt.mime_type: fmt for fmt in FileFormat}

DEFAULT_EXTENSION = "bin"

ALL_ALLOWED_TYPES: frozenset[str] = frozenset(fmt.mime_type for fmt in FileFormat)

IMPORT_ALLOWED_TYPES: frozenset[str] = frozenset(
    {FileFormat.XLSX.mime_type, FileFormat.CSV.mime_type}
)

IMAGE_ALLOWED_TYPES: frozenset[str] = frozenset(
    {FileFormat.PNG.mime_type, FileFormat.JPEG.mime_type, FileFormat.WEBP.mime_type}
)

TEMPLATE_ALLOWED_TYPES: frozenset[str] = IMAGE_ALLOWED_TYPES | frozenset(
    {FileFormat.PDF.mime_type, FileFormat.DOCX.mime_type, FileFormat.PPTX.mime_type}
)


def normalize_mime_type(mime_type: str) -> str:
    """
    Case-fold a MIME type and collapse known aliases (``image/jpg``).
    """

    normalized = mime_type.strip().lower()
    return _MIME_ALIASES.get(normalized, normalized)


def extension_for(mime_type: str) -> str:
    fmt = FileFormat.from_mime(mime_type)
    if fmt is None:
        return DEFAULT_EXTENSION
    return fmt.extension
