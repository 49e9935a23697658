"""
app/services package marker.
"""

from app.services.import_ingestion_service import (
    ImportIngestionOrchestrator,
    get_import_ingestion_orchestrator,
)
from app.services.import_job_service import (
    ImportJobService,
    Page,
    get_import_job_service,
)

__all__ = [
    "ImportIngestionOrchestrator",
    "get_import_ingestion_orchestrator",
    "ImportJobService",
    "Page",
    "get_import_job_service",
]
