"""
app/api/dependencies.py

Shared FastAPI dependencies for tenant context and upload metadata.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from fastapi import Form, Header, HTTPException, status
from pydantic import ValidationError as PydanticValidationError

from app.domain.import_job import ImportJobMetadata
from app.schemas.import_jobs import ImportJobMetadataRequest

MAX_HEADER_ID_LENGTH = 64
_HEADER_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


@dataclass(frozen=True)
class TenantContext:
    """
    Authenticated caller identity forwarded by the upstream auth layer.
    """

    tenant_id: str
    user_id: str


def get_tenant_context(
    x_tenant_id: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> TenantContext:
    tenant_id = (x_tenant_id or "").strip()
    user_id = (x_user_id or "").strip()

    if not tenant_id or not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing tenant context.",
        )
    # Tenant ids become storage path segments.
    if (
        len(tenant_id) > MAX_HEADER_ID_LENGTH
        or len(user_id) > MAX_HEADER_ID_LENGTH
        or not _HEADER_ID_PATTERN.fullmatch(tenant_id)
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid tenant context.",
        )

    return TenantContext(tenant_id=tenant_id, user_id=user_id)


def get_import_metadata(metadata: str = Form(...)) -> ImportJobMetadata:
    """
    Parse the JSON ``metadata`` form field into import job metadata.
    """

    try:
        payload = json.loads(metadata)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="metadata must be a JSON object.",
        ) from exc

    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="metadata must be a JSON object.",
        )

    try:
        request = ImportJobMetadataRequest.model_validate(payload)
    except PydanticValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "INVALID_METADATA",
                "message": "Invalid import job metadata.",
                "details": exc.errors(include_url=False, include_context=False),
            },
        ) from exc

    return ImportJobMetadata(
        file_name=request.file_name,
        reusable=request.reusable,
        certificate_category=request.certificate_category,
        certificate_subcategory=request.certificate_subcategory,
        template_id=request.template_id,
    )
