"""
Collaborator interfaces the import flow depends on.

Concrete implementations live under ``db/repositories``; the services only
see these protocols.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Protocol

from app.domain.import_job import ImportDataRow, ImportJob, ImportJobFields


class BlobStore(Protocol):
    """
    Object storage for original upload bytes.

    Implementations raise ``StorageError`` on failure, including when
    ``path`` already exists.
    """

    async def put(self, path: str, content: bytes, content_type: str) -> None:
        ...

    async def signed_url(self, path: str, ttl_seconds: int) -> str:
        ...


class ImportJobRepository(Protocol):
    """
    Tenant-scoped persistence for import jobs and their rows.

    Implementations raise ``PersistenceError`` on failure.
    """

    async def create_job(
        self,
        tenant_id: str,
        created_by: str,
        fields: ImportJobFields,
    ) -> ImportJob:
        ...

    async def persist_rows(
        self,
        tenant_id: str,
        job_id: uuid.UUID,
        rows: Sequence[ImportDataRow],
    ) -> None:
        ...

    async def mark_rows_persisted(self, tenant_id: str, job_id: uuid.UUID) -> None:
        ...

    async def get_job(self, tenant_id: str, job_id: uuid.UUID) -> ImportJob | None:
        ...

    async def list_jobs(
        self,
        tenant_id: str,
        *,
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> tuple[list[ImportJob], int]:
        ...

    async def get_data_rows(
        self,
        tenant_id: str,
        job_id: uuid.UUID,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[ImportDataRow], int]:
        ...
