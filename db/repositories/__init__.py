"""
Repository layer exports.
"""

from db.repositories.import_job_repository import SQLAlchemyImportJobRepository, get_import_job_repository
from db.repositories.storage import LocalBlobStore, SupabaseBlobStore, build_blob_store, get_blob_store

__all__ = [
    "SQLAlchemyImportJobRepository",
    "get_import_job_repository",
    "LocalBlobStore",
    "SupabaseBlobStore",
    "build_blob_store",
    "get_blob_store",
]
