"""
app/schemas/import_jobs.py

Request and response schemas for import job endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domain.import_job import ImportDataRow, ImportJob, IngestionResult
from app.services.import_job_service import Page


class ImportJobMetadataRequest(BaseModel):
    """
    Metadata form field sent alongside the uploaded file.
    """

    model_config = ConfigDict(extra="forbid")

    file_name: str = Field(..., min_length=1, max_length=1024)
    certificate_category: str | None = Field(default=None, max_length=255)
    certificate_subcategory: str | None = Field(default=None, max_length=255)
    template_id: uuid.UUID | None = None
    reusable: bool = True


class ImportJobResponse(BaseModel):
    id: uuid.UUID
    file_name: str
    storage_path: str
    source_type: str
    status: str
    total_rows: int = Field(..., ge=0)
    reusable: bool
    data_persisted: bool
    mime_type: str | None = None
    file_size_bytes: int | None = None
    checksum: str | None = None
    certificate_category: str | None = None
    certificate_subcategory: str | None = None
    template_id: uuid.UUID | None = None
    created_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_job(cls, job: ImportJob) -> ImportJobResponse:
        return cls(
            id=job.id,
            file_name=job.file_name,
            storage_path=job.storage_path,
            source_type=job.source_type,
            status=job.status,
            total_rows=job.total_rows,
            reusable=job.reusable,
            data_persisted=job.data_persisted,
            mime_type=job.mime_type,
            file_size_bytes=job.file_size_bytes,
            checksum=job.checksum,
            certificate_category=job.certificate_category,
            certificate_subcategory=job.certificate_subcategory,
            template_id=job.template_id,
            created_by=job.created_by,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class ImportJobCreatedResponse(BaseModel):
    """
    API response model for a created import job.

    ``row_persistence`` tells the caller whether the parsed rows were stored
    (``persisted``), deliberately not stored (``skipped``) or lost to an
    error after the job was created (``failed``).
    """

    job: ImportJobResponse
    row_persistence: str
    failure_reason: str | None = None

    @classmethod
    def from_result(cls, result: IngestionResult) -> ImportJobCreatedResponse:
        return cls(
            job=ImportJobResponse.from_job(result.job),
            row_persistence=result.row_persistence.value,
            failure_reason=result.failure_reason,
        )


class PaginationResponse(BaseModel):
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)

    @classmethod
    def from_page(cls, page: Page) -> PaginationResponse:
        return cls(page=page.page, limit=page.limit, total=page.total, total_pages=page.total_pages)


class ImportJobListResponse(BaseModel):
    items: list[ImportJobResponse] = Field(default_factory=list)
    pagination: PaginationResponse


class ImportDataRowResponse(BaseModel):
    row_number: int = Field(..., ge=1)
    data: dict[str, Any]

    @classmethod
    def from_row(cls, row: ImportDataRow) -> ImportDataRowResponse:
        return cls(row_number=row.row_number, data=row.data)


class ImportDataRowListResponse(BaseModel):
    job_id: uuid.UUID
    items: list[ImportDataRowResponse] = Field(default_factory=list)
    pagination: PaginationResponse


class ImportFileUrlResponse(BaseModel):
    download_url: str
