"""
Exceptions raised by the upload validation, naming, parsing and ingestion flow.

Client-caused failures (``ValidationError``, ``ParseError``) carry enough
structured detail for the HTTP layer to explain the rejection. Collaborator
failures (``StorageError``, ``PersistenceError``) are deliberately opaque.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ValidationErrorKind(str, Enum):
    DECLARED_TYPE_NOT_ALLOWED = "declared_type_not_allowed"
    CONTENT_MISMATCH = "content_mismatch"
    UNDETECTABLE_CONTENT = "undetectable_content"
    DETECTED_TYPE_NOT_ALLOWED = "detected_type_not_allowed"
    EMPTY_DATASET = "empty_dataset"
    FILE_TOO_LARGE = "file_too_large"


class IngestionError(Exception):
    """Base exception for upload ingestion failures."""


class ValidationError(IngestionError):
    """
    Raised when an upload is rejected because of what the client sent.
    """

    def __init__(
        self,
        kind: ValidationErrorKind,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.kind.value,
            "message": str(self),
            "details": self.details,
        }


class EmptyDatasetError(ValidationError):
    """Raised when tabular content parses to zero data rows."""

    def __init__(self, message: str = "File is empty or has no data") -> None:
        super().__init__(ValidationErrorKind.EMPTY_DATASET, message)


class ParseError(IngestionError):
    """Raised when tabular content is structurally unreadable."""

    def __init__(self, message: str = "unparseable content") -> None:
        super().__init__(message)


class StoragePathError(IngestionError):
    """Raised when a storage path violates the allowed path layout."""

    def __init__(self, code: str, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.details = dict(details or {})


class StorageError(IngestionError):
    """Raised when the blob store cannot write a file or sign a URL."""


class PersistenceError(IngestionError):
    """Raised when import job or row metadata cannot be persisted."""


class ImportJobNotFoundError(IngestionError):
    """Raised when an import job does not exist for the requesting tenant."""
