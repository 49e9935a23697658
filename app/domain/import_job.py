"""
app/domain/import_job.py

Domain models used by the import ingestion flow.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class RowPersistence(str, Enum):
    """
    What happened to the parsed rows after the job was created.
    """

    PERSISTED = "persisted"
    SKIPPED = "skipped"
    FAILED = "failed"


class IngestionStage(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    PARSED = "parsed"
    STORED = "stored"
    ROWS_PERSISTED = "rows_persisted"
    ROWS_SKIPPED_OR_FAILED = "rows_skipped_or_failed"
    READY = "ready"
    ABORTED = "aborted"


@dataclass(frozen=True)
class UploadCandidate:
    """
    Raw upload as received from the client. Request-scoped; never stored.
    """

    content: bytes
    declared_type: str
    declared_file_name: str


@dataclass(frozen=True)
class ImportJobMetadata:
    """
    Client-supplied job metadata accompanying an upload.
    """

    file_name: str
    reusable: bool = True
    certificate_category: str | None = None
    certificate_subcategory: str | None = None
    template_id: uuid.UUID | None = None


@dataclass(frozen=True)
class ImportJobFields:
    """
    Values the orchestrator hands to the repository when creating a job.
    """

    file_name: str
    storage_path: str
    source_type: str
    total_rows: int
    reusable: bool
    mime_type: str
    file_size_bytes: int
    checksum: str
    certificate_category: str | None = None
    certificate_subcategory: str | None = None
    template_id: uuid.UUID | None = None


@dataclass(frozen=True)
class ImportJob:
    id: uuid.UUID
    tenant_id: str
    created_by: str
    file_name: str
    storage_path: str
    source_type: str
    total_rows: int
    reusable: bool
    data_persisted: bool
    status: str
    created_at: datetime
    mime_type: str | None = None
    file_size_bytes: int | None = None
    checksum: str | None = None
    certificate_category: str | None = None
    certificate_subcategory: str | None = None
    template_id: uuid.UUID | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ImportDataRow:
    row_number: int
    data: dict[str, Any]
    job_id: uuid.UUID | None = None


@dataclass(frozen=True)
class IngestionResult:
    """
    Outcome of one ingestion call.

    The job always exists once a result is returned. ``row_persistence``
    tells callers whether row-level data is queryable.
    """

    job: ImportJob
    row_persistence: RowPersistence
    failure_reason: str | None = None
    stages: tuple[IngestionStage, ...] = field(default_factory=tuple)

    @property
    def degraded(self) -> bool:
        return self.row_persistence is RowPersistence.FAILED
