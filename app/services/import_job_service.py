"""
app/services/import_job_service.py

Read-side operations for import jobs: lookup, listing, stored rows and
signed download URLs. All calls are tenant-scoped.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from functools import lru_cache

from app.config import get_import_settings
from app.domain.import_job import ImportDataRow, ImportJob
from app.domain.ports import BlobStore, ImportJobRepository
from uploads.errors import ImportJobNotFoundError
from uploads.naming import validate_storage_path

SORTABLE_FIELDS = frozenset({"created_at", "updated_at", "file_name", "status", "total_rows"})


@dataclass(frozen=True)
class Page:
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


class ImportJobService:
    def __init__(
        self,
        *,
        repository: ImportJobRepository,
        blob_store: BlobStore,
        signed_url_ttl_seconds: int = 3600,
        storage_bucket: str = "file_imports",
    ) -> None:
        self._repository = repository
        self._blob_store = blob_store
        self._signed_url_ttl_seconds = signed_url_ttl_seconds
        self._storage_bucket = storage_bucket

    async def get_job(self, job_id: uuid.UUID, tenant_id: str) -> ImportJob:
        job = await self._repository.get_job(tenant_id, job_id)
        if job is None:
            raise ImportJobNotFoundError("Import job not found")
        return job

    async def list_jobs(
        self,
        tenant_id: str,
        *,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str | None = None,
        sort_order: str = "desc",
    ) -> tuple[list[ImportJob], Page]:
        """
        List a tenant's import jobs, newest first unless told otherwise.

        Unknown sort fields fall back to ``created_at``.
        """

        page = max(1, page)
        limit = max(1, limit)
        jobs, total = await self._repository.list_jobs(
            tenant_id,
            status=status,
            limit=limit,
            offset=(page - 1) * limit,
            sort_by=sort_by if sort_by in SORTABLE_FIELDS else "created_at",
            descending=sort_order.lower() != "asc",
        )
        return jobs, Page(page=page, limit=limit, total=total)

    async def get_data_rows(
        self,
        job_id: uuid.UUID,
        tenant_id: str,
        *,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[ImportDataRow], Page]:
        await self.get_job(job_id, tenant_id)

        page = max(1, page)
        limit = max(1, limit)
        rows, total = await self._repository.get_data_rows(
            tenant_id,
            job_id,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return rows, Page(page=page, limit=limit, total=total)

    async def get_file_url(self, job_id: uuid.UUID, tenant_id: str) -> str:
        job = await self.get_job(job_id, tenant_id)
        if not job.storage_path:
            raise ImportJobNotFoundError("Import file not found")
        validate_storage_path(job.storage_path, expected_root=self._storage_bucket)
        return await self._blob_store.signed_url(job.storage_path, self._signed_url_ttl_seconds)


@lru_cache(maxsize=1)
def get_import_job_service() -> ImportJobService:
    from db.repositories.import_job_repository import get_import_job_repository
    from db.repositories.storage import get_blob_store

    settings = get_import_settings()
    return ImportJobService(
        repository=get_import_job_repository(),
        blob_store=get_blob_store(),
        signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
        storage_bucket=settings.storage_bucket,
    )
