"""
app/services/import_ingestion_service.py

Orchestrates the "create import job" operation:

    1. validate the upload content against the import allow-list
    2. parse it into row records
    3. store the original bytes under a server-generated path
    4. create the import job (the durability boundary)
    5. optionally persist the parsed rows

Any failure in steps 1-4 aborts the call and re-raises the originating
error; no job exists in that case. Failures in step 5 are logged and
reported through ``IngestionResult`` instead of failing the request: a file
that was stored and parsed must not be lost because of a row-insert error.

When ``pipeline_timeout_seconds`` is set it bounds steps 1-3 only and
surfaces as ``TimeoutError``; a job that reaches step 4 is always returned.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import replace
from functools import lru_cache

from app.config import ImportSettings, get_import_settings
from app.domain.import_job import (
    ImportDataRow,
    ImportJob,
    ImportJobFields,
    ImportJobMetadata,
    IngestionResult,
    IngestionStage,
    RowPersistence,
    UploadCandidate,
)
from app.domain.ports import BlobStore, ImportJobRepository
from uploads.errors import IngestionError, ValidationError, ValidationErrorKind
from uploads.formats import IMPORT_ALLOWED_TYPES
from uploads.naming import generate_storage_path, sanitize_display_name
from uploads.parser import RowRecord, SourceType, parse_tabular_content, source_type_for
from uploads.validator import ValidatedFile, validate_file_upload


class ImportIngestionOrchestrator:
    """
    Runs one upload through validation, parsing, storage and job creation.
    """

    def __init__(
        self,
        *,
        blob_store: BlobStore,
        repository: ImportJobRepository,
        settings: ImportSettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._blob_store = blob_store
        self._repository = repository
        self._settings = settings or ImportSettings()
        self._logger = logger or logging.getLogger(__name__)

    async def ingest(
        self,
        candidate: UploadCandidate,
        *,
        tenant_id: str,
        created_by: str,
        metadata: ImportJobMetadata,
    ) -> IngestionResult:
        """
        Create an import job from one uploaded CSV / XLSX file.

        Raises:
            ValidationError: disallowed, spoofed, oversized or empty upload.
            ParseError: content could not be read as a table.
            StorageError: the original bytes could not be stored.
            PersistenceError: the job record could not be created.
            TimeoutError: validation, parsing and storage overran the deadline.
        """

        stages = [IngestionStage.RECEIVED]
        try:
            job, rows = await self._create_job(candidate, tenant_id, created_by, metadata, stages)
        except (IngestionError, TimeoutError) as exc:
            stages.append(IngestionStage.ABORTED)
            self._logger.warning(
                "Import ingestion aborted tenant_id=%s stages=%s error_type=%s error=%s",
                tenant_id,
                "->".join(stage.value for stage in stages),
                type(exc).__name__,
                exc,
            )
            raise

        if not metadata.reusable:
            stages.extend([IngestionStage.ROWS_SKIPPED_OR_FAILED, IngestionStage.READY])
            return IngestionResult(job=job, row_persistence=RowPersistence.SKIPPED, stages=tuple(stages))

        return await self._persist_rows(job, rows, stages)

    async def _create_job(
        self,
        candidate: UploadCandidate,
        tenant_id: str,
        created_by: str,
        metadata: ImportJobMetadata,
        stages: list[IngestionStage],
    ) -> tuple[ImportJob, list[RowRecord]]:
        content = candidate.content
        # The deadline stops at STORED; once job creation starts it must finish.
        store = self._store_upload(candidate, tenant_id, stages)
        if self._settings.pipeline_timeout_seconds > 0:
            validated, source_type, rows, storage_path = await asyncio.wait_for(
                store,
                timeout=self._settings.pipeline_timeout_seconds,
            )
        else:
            validated, source_type, rows, storage_path = await store

        fields = ImportJobFields(
            file_name=sanitize_display_name(metadata.file_name or candidate.declared_file_name),
            storage_path=storage_path,
            source_type=source_type.value,
            total_rows=len(rows),
            reusable=metadata.reusable,
            mime_type=validated.detected_type,
            file_size_bytes=len(content),
            checksum=hashlib.sha256(content).hexdigest(),
            certificate_category=metadata.certificate_category,
            certificate_subcategory=metadata.certificate_subcategory,
            template_id=metadata.template_id,
        )
        try:
            job = await self._repository.create_job(tenant_id, created_by, fields)
        except IngestionError:
            self._logger.error(
                "Import job creation failed; stored blob is orphaned tenant_id=%s storage_path=%s",
                tenant_id,
                storage_path,
            )
            raise

        self._logger.info(
            "Import job created job_id=%s tenant_id=%s source_type=%s total_rows=%d storage_path=%s",
            job.id,
            tenant_id,
            job.source_type,
            job.total_rows,
            storage_path,
        )
        return job, rows

    async def _store_upload(
        self,
        candidate: UploadCandidate,
        tenant_id: str,
        stages: list[IngestionStage],
    ) -> tuple[ValidatedFile, SourceType, list[RowRecord], str]:
        content = candidate.content
        if len(content) > self._settings.max_upload_bytes:
            raise ValidationError(
                ValidationErrorKind.FILE_TOO_LARGE,
                "Uploaded file exceeds configured size limit.",
                details={"size_bytes": len(content), "max_bytes": self._settings.max_upload_bytes},
            )

        validated = validate_file_upload(content, candidate.declared_type, IMPORT_ALLOWED_TYPES)
        stages.append(IngestionStage.VALIDATED)

        source_type = source_type_for(validated.file_format)
        rows = parse_tabular_content(content, source_type)
        stages.append(IngestionStage.PARSED)

        storage_path = generate_storage_path(self._settings.storage_bucket, tenant_id, validated.detected_type)
        await self._blob_store.put(storage_path, content, validated.detected_type)
        stages.append(IngestionStage.STORED)
        return validated, source_type, rows, storage_path

    async def _persist_rows(
        self,
        job: ImportJob,
        rows: list[RowRecord],
        stages: list[IngestionStage],
    ) -> IngestionResult:
        data_rows = [ImportDataRow(row_number=index, data=row, job_id=job.id) for index, row in enumerate(rows, start=1)]
        try:
            await self._repository.persist_rows(job.tenant_id, job.id, data_rows)
            await self._repository.mark_rows_persisted(job.tenant_id, job.id)
        # Row persistence is best-effort once the job exists.
        except Exception as exc:
            self._logger.warning(
                "Failed to persist import data rows job_id=%s tenant_id=%s rows=%d error=%s",
                job.id,
                job.tenant_id,
                len(data_rows),
                exc,
            )
            stages.extend([IngestionStage.ROWS_SKIPPED_OR_FAILED, IngestionStage.READY])
            return IngestionResult(
                job=job,
                row_persistence=RowPersistence.FAILED,
                failure_reason=str(exc) or type(exc).__name__,
                stages=tuple(stages),
            )

        stages.extend([IngestionStage.ROWS_PERSISTED, IngestionStage.READY])
        return IngestionResult(
            job=replace(job, data_persisted=True),
            row_persistence=RowPersistence.PERSISTED,
            stages=tuple(stages),
        )


@lru_cache(maxsize=1)
def get_import_ingestion_orchestrator() -> ImportIngestionOrchestrator:
    """
    Return the process-wide orchestrator wired to the configured backends.
    """

    from db.repositories.import_job_repository import get_import_job_repository
    from db.repositories.storage import get_blob_store

    return ImportIngestionOrchestrator(
        blob_store=get_blob_store(),
        repository=get_import_job_repository(),
        settings=get_import_settings(),
    )
