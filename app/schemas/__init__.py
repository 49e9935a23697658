"""
app/schemas package marker.
"""

from app.schemas.import_jobs import (
    ImportDataRowListResponse,
    ImportDataRowResponse,
    ImportFileUrlResponse,
    ImportJobCreatedResponse,
    ImportJobListResponse,
    ImportJobMetadataRequest,
    ImportJobResponse,
    PaginationResponse,
)

__all__ = [
    "ImportDataRowListResponse",
    "ImportDataRowResponse",
    "ImportFileUrlResponse",
    "ImportJobCreatedResponse",
    "ImportJobListResponse",
    "ImportJobMetadataRequest",
    "ImportJobResponse",
    "PaginationResponse",
]
