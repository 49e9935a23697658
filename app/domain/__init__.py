"""
app/domain package marker.
"""

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

__all__ = [
    "BlobStore",
    "ImportDataRow",
    "ImportJob",
    "ImportJobFields",
    "ImportJobMetadata",
    "ImportJobRepository",
    "IngestionResult",
    "IngestionStage",
    "RowPersistence",
    "UploadCandidate",
]
