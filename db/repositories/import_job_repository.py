"""
Repository for import job and import data row persistence.

Session work is blocking, so every public coroutine runs its unit of work in
a worker thread with its own session and transaction.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from sqlalchemy import Select, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_import_settings
from app.domain.import_job import ImportDataRow, ImportJob, ImportJobFields
from db.models.import_data_row import ImportDataRowRecord
from db.models.import_job import ImportJobRecord, ImportJobStatus
from uploads.errors import PersistenceError

SORTABLE_COLUMNS: dict[str, Any] = {
    "created_at": ImportJobRecord.created_at,
    "updated_at": ImportJobRecord.updated_at,
    "file_name": ImportJobRecord.file_name,
    "status": ImportJobRecord.status,
    "total_rows": ImportJobRecord.total_rows,
}


class SQLAlchemyImportJobRepository:
    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        batch_size: int = 500,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory
        self._batch_size = max(1, batch_size)

    # ------------------------------------------------------------------
    # Async interface
    # ------------------------------------------------------------------

    async def create_job(self, tenant_id: str, created_by: str, fields: ImportJobFields) -> ImportJob:
        return await asyncio.to_thread(self._create_job, tenant_id, created_by, fields)

    async def persist_rows(
        self,
        tenant_id: str,
        job_id: uuid.UUID,
        rows: Sequence[ImportDataRow],
    ) -> None:
        await asyncio.to_thread(self._persist_rows, tenant_id, job_id, rows)

    async def mark_rows_persisted(self, tenant_id: str, job_id: uuid.UUID) -> None:
        await asyncio.to_thread(self._mark_rows_persisted, tenant_id, job_id)

    async def get_job(self, tenant_id: str, job_id: uuid.UUID) -> ImportJob | None:
        return await asyncio.to_thread(self._get_job, tenant_id, job_id)

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
        return await asyncio.to_thread(
            self._list_jobs,
            tenant_id,
            status,
            limit,
            offset,
            sort_by,
            descending,
        )

    async def get_data_rows(
        self,
        tenant_id: str,
        job_id: uuid.UUID,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[ImportDataRow], int]:
        return await asyncio.to_thread(self._get_data_rows, tenant_id, job_id, limit, offset)

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    def _create_job(self, tenant_id: str, created_by: str, fields: ImportJobFields) -> ImportJob:
        try:
            with self._session_factory() as session:
                with session.begin():
                    record = ImportJobRecord(
                        tenant_id=tenant_id,
                        created_by=created_by,
                        file_name=fields.file_name,
                        storage_path=fields.storage_path,
                        source_type=fields.source_type,
                        status=ImportJobStatus.PENDING,
                        total_rows=fields.total_rows,
                        reusable=fields.reusable,
                        data_persisted=False,
                        mime_type=fields.mime_type,
                        file_size_bytes=fields.file_size_bytes,
                        checksum=fields.checksum,
                        certificate_category=fields.certificate_category,
                        certificate_subcategory=fields.certificate_subcategory,
                        template_id=fields.template_id,
                    )
                    session.add(record)
                    session.flush()
                    session.refresh(record)
                    return _to_job(record)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to create import job.") from exc

    def _persist_rows(self, tenant_id: str, job_id: uuid.UUID, rows: Sequence[ImportDataRow]) -> None:
        """
        Insert all rows in one transaction, chunked into batches.
        """

        try:
            with self._session_factory() as session:
                with session.begin():
                    if self._find_job(session, tenant_id, job_id) is None:
                        raise PersistenceError(f"Import job not found: {job_id}")

                    for chunk_start in range(0, len(rows), self._batch_size):
                        chunk = rows[chunk_start : chunk_start + self._batch_size]
                        values = [
                            {
                                "id": uuid.uuid4(),
                                "import_job_id": job_id,
                                "tenant_id": tenant_id,
                                "row_number": row.row_number,
                                "data": row.data,
                            }
                            for row in chunk
                        ]
                        session.execute(insert(ImportDataRowRecord), values)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to store import data rows.") from exc

    def _mark_rows_persisted(self, tenant_id: str, job_id: uuid.UUID) -> None:
        try:
            with self._session_factory() as session:
                with session.begin():
                    result = session.execute(
                        update(ImportJobRecord)
                        .where(
                            ImportJobRecord.id == job_id,
                            ImportJobRecord.tenant_id == tenant_id,
                            ImportJobRecord.deleted_at.is_(None),
                        )
                        .values(data_persisted=True)
                    )
                    if result.rowcount == 0:
                        raise PersistenceError(f"Import job not found: {job_id}")
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to update import job.") from exc

    def _get_job(self, tenant_id: str, job_id: uuid.UUID) -> ImportJob | None:
        try:
            with self._session_factory() as session:
                record = self._find_job(session, tenant_id, job_id)
                return _to_job(record) if record is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to find import job.") from exc

    def _list_jobs(
        self,
        tenant_id: str,
        status: str | None,
        limit: int,
        offset: int,
        sort_by: str,
        descending: bool,
    ) -> tuple[list[ImportJob], int]:
        column = SORTABLE_COLUMNS.get(sort_by)
        if column is None:
            raise ValueError(f"Unsupported sort column: {sort_by!r}")

        stmt: Select[tuple[ImportJobRecord]] = select(ImportJobRecord).where(
            ImportJobRecord.tenant_id == tenant_id,
            ImportJobRecord.deleted_at.is_(None),
        )
        if status:
            stmt = stmt.where(ImportJobRecord.status == status)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        stmt = (
            stmt.order_by(column.desc() if descending else column.asc(), ImportJobRecord.id)
            .limit(max(1, limit))
            .offset(max(0, offset))
        )

        try:
            with self._session_factory() as session:
                total = session.scalar(count_stmt) or 0
                records = session.scalars(stmt).all()
                return [_to_job(record) for record in records], int(total)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to find import jobs.") from exc

    def _get_data_rows(
        self,
        tenant_id: str,
        job_id: uuid.UUID,
        limit: int,
        offset: int,
    ) -> tuple[list[ImportDataRow], int]:
        base = select(ImportDataRowRecord).where(
            ImportDataRowRecord.import_job_id == job_id,
            ImportDataRowRecord.tenant_id == tenant_id,
        )
        count_stmt = select(func.count()).select_from(base.subquery())
        stmt = base.order_by(ImportDataRowRecord.row_number.asc()).limit(max(1, limit)).offset(max(0, offset))

        try:
            with self._session_factory() as session:
                total = session.scalar(count_stmt) or 0
                records = session.scalars(stmt).all()
                return [
                    ImportDataRow(row_number=record.row_number, data=dict(record.data), job_id=record.import_job_id)
                    for record in records
                ], int(total)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to get import data rows.") from exc

    @staticmethod
    def _find_job(session: Session, tenant_id: str, job_id: uuid.UUID) -> ImportJobRecord | None:
        stmt = select(ImportJobRecord).where(
            ImportJobRecord.id == job_id,
            ImportJobRecord.tenant_id == tenant_id,
            ImportJobRecord.deleted_at.is_(None),
        )
        return session.scalars(stmt).first()


def _to_job(record: ImportJobRecord) -> ImportJob:
    return ImportJob(
        id=record.id,
        tenant_id=record.tenant_id,
        created_by=record.created_by,
        file_name=record.file_name,
        storage_path=record.storage_path,
        source_type=record.source_type,
        total_rows=record.total_rows,
        reusable=record.reusable,
        data_persisted=record.data_persisted,
        status=record.status,
        created_at=record.created_at,
        mime_type=record.mime_type,
        file_size_bytes=record.file_size_bytes,
        checksum=record.checksum,
        certificate_category=record.certificate_category,
        certificate_subcategory=record.certificate_subcategory,
        template_id=record.template_id,
        updated_at=record.updated_at,
    )


@lru_cache(maxsize=1)
def get_import_job_repository() -> SQLAlchemyImportJobRepository:
    return SQLAlchemyImportJobRepository(batch_size=get_import_settings().row_batch_size)
