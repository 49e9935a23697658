"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.import_data_row import ImportDataRowRecord
from db.models.import_job import ImportJobRecord, ImportJobStatus

__all__ = [
    "ImportDataRowRecord",
    "ImportJobRecord",
    "ImportJobStatus",
]
