"""
app/api/routers/import_jobs.py

Import job HTTP endpoints.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse

from app.api.dependencies import TenantContext, get_import_metadata, get_tenant_context
from app.config import ImportSettings, get_import_settings
from app.domain.import_job import ImportJobMetadata, UploadCandidate
from app.schemas.import_jobs import (
    ImportDataRowListResponse,
    ImportDataRowResponse,
    ImportFileUrlResponse,
    ImportJobCreatedResponse,
    ImportJobListResponse,
    ImportJobResponse,
    PaginationResponse,
)
from app.services.import_ingestion_service import ImportIngestionOrchestrator, get_import_ingestion_orchestrator
from app.services.import_job_service import ImportJobService, get_import_job_service
from db.models.import_job import ImportJobStatus
from db.repositories.storage import LocalBlobStore, SupabaseBlobStore, get_blob_store
from uploads.errors import (
    ImportJobNotFoundError,
    ParseError,
    PersistenceError,
    StorageError,
    StoragePathError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["import-jobs"])

_JOB_STATUSES = {
    ImportJobStatus.PENDING,
    ImportJobStatus.PROCESSING,
    ImportJobStatus.COMPLETED,
    ImportJobStatus.FAILED,
}


@router.post(
    "/import-jobs",
    status_code=status.HTTP_201_CREATED,
    response_model=ImportJobCreatedResponse,
)
async def create_import_job(
    file: UploadFile = File(...),
    metadata: ImportJobMetadata = Depends(get_import_metadata),
    tenant: TenantContext = Depends(get_tenant_context),
    settings: ImportSettings = Depends(get_import_settings),
    orchestrator: ImportIngestionOrchestrator = Depends(get_import_ingestion_orchestrator),
) -> ImportJobCreatedResponse:
    """
    Validate, store and register one CSV / XLSX upload as an import job.
    """

    try:
        # One byte over the limit is enough for the size check to trip.
        content = await file.read(settings.max_upload_bytes + 1)
    finally:
        await file.close()

    candidate = UploadCandidate(
        content=content,
        declared_type=file.content_type or "",
        declared_file_name=file.filename or "",
    )

    try:
        result = await orchestrator.ingest(
            candidate,
            tenant_id=tenant.tenant_id,
            created_by=tenant.user_id,
            metadata=metadata,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except ParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "PARSE_ERROR", "message": str(exc), "details": {}},
        ) from exc
    except (StorageError, PersistenceError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to create import job.",
        ) from exc
    except TimeoutError as exc:
        logger.error(
            "Import pipeline timed out tenant_id=%s timeout_seconds=%s",
            tenant.tenant_id,
            settings.pipeline_timeout_seconds,
        )
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Import processing timed out.",
        ) from exc

    return ImportJobCreatedResponse.from_result(result)


@router.get("/import-jobs", response_model=ImportJobListResponse)
async def list_import_jobs(
    status_filter: str | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: str | None = Query(default=None),
    sort_order: str = Query(default="desc"),
    tenant: TenantContext = Depends(get_tenant_context),
    service: ImportJobService = Depends(get_import_job_service),
) -> ImportJobListResponse:
    if status_filter is not None and status_filter not in _JOB_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown status filter: {status_filter}",
        )

    try:
        jobs, pagination = await service.list_jobs(
            tenant.tenant_id,
            status=status_filter,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to list import jobs.",
        ) from exc

    return ImportJobListResponse(
        items=[ImportJobResponse.from_job(job) for job in jobs],
        pagination=PaginationResponse.from_page(pagination),
    )


@router.get("/import-jobs/{job_id}", response_model=ImportJobResponse)
async def get_import_job(
    job_id: UUID,
    tenant: TenantContext = Depends(get_tenant_context),
    service: ImportJobService = Depends(get_import_job_service),
) -> ImportJobResponse:
    try:
        job = await service.get_job(job_id, tenant.tenant_id)
    except ImportJobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import job not found.") from exc
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to load import job.",
        ) from exc

    return ImportJobResponse.from_job(job)


@router.get("/import-jobs/{job_id}/data", response_model=ImportDataRowListResponse)
async def get_import_job_data(
    job_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=100, ge=1, le=1000),
    tenant: TenantContext = Depends(get_tenant_context),
    service: ImportJobService = Depends(get_import_job_service),
) -> ImportDataRowListResponse:
    try:
        rows, pagination = await service.get_data_rows(job_id, tenant.tenant_id, page=page, limit=limit)
    except ImportJobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import job not found.") from exc
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to load import data rows.",
        ) from exc

    return ImportDataRowListResponse(
        job_id=job_id,
        items=[ImportDataRowResponse.from_row(row) for row in rows],
        pagination=PaginationResponse.from_page(pagination),
    )


@router.get("/import-jobs/{job_id}/download", response_model=ImportFileUrlResponse)
async def get_import_job_download_url(
    job_id: UUID,
    tenant: TenantContext = Depends(get_tenant_context),
    service: ImportJobService = Depends(get_import_job_service),
) -> ImportFileUrlResponse:
    try:
        download_url = await service.get_file_url(job_id, tenant.tenant_id)
    except ImportJobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import job not found.") from exc
    except (StorageError, StoragePathError, PersistenceError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to generate download URL.",
        ) from exc

    return ImportFileUrlResponse(download_url=download_url)


@router.get("/files/{path:path}", include_in_schema=False)
def download_signed_file(
    path: str,
    expires: int = Query(...),
    signature: str = Query(..., min_length=1),
    blob_store: LocalBlobStore | SupabaseBlobStore = Depends(get_blob_store),
) -> FileResponse:
    """
    Serve a locally stored upload behind a signed URL.

    Only the local backend serves files itself; Supabase URLs point at
    Supabase directly.
    """

    if not isinstance(blob_store, LocalBlobStore):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found.")

    try:
        target = blob_store.open_signed(path, expires, signature)
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired link.") from exc

    return FileResponse(target, filename=target.name)
