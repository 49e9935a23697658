"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_STORAGE_BACKENDS = {"local", "supabase"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for import ingestion.
    """

    max_upload_bytes: int = 50 * 1024 * 1024
    storage_bucket: str = "file_imports"
    row_batch_size: int = 500
    signed_url_ttl_seconds: int = 3600
    pipeline_timeout_seconds: float = 0.0


@dataclass(frozen=True)
class StorageSettings:
    """
    Blob storage backend selection and credentials.
    """

    backend: str = "local"
    local_root_dir: str = "data/uploads"
    public_base_url: str = "http://localhost:8000/files"
    signing_secret: str | None = None
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    supabase_bucket: str = "uploads"
    http_timeout_seconds: float = 15.0


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return ImportSettings(
        max_upload_bytes=max(1, _get_int_env("IMPORT_MAX_UPLOAD_BYTES", 50 * 1024 * 1024)),
        storage_bucket=_get_str_env("IMPORT_STORAGE_BUCKET", "file_imports"),
        row_batch_size=max(1, _get_int_env("IMPORT_ROW_BATCH_SIZE", 500)),
        signed_url_ttl_seconds=max(1, _get_int_env("IMPORT_SIGNED_URL_TTL_SECONDS", 3600)),
        pipeline_timeout_seconds=max(0.0, _get_float_env("IMPORT_PIPELINE_TIMEOUT_SECONDS", 0.0)),
    )


@lru_cache(maxsize=1)
def get_storage_settings() -> StorageSettings:
    """
    Return cached blob storage settings.

    Raises RuntimeError if STORAGE_BACKEND names an unknown backend.
    """

    backend = _get_str_env("STORAGE_BACKEND", "local").lower()
    if backend not in _ALLOWED_STORAGE_BACKENDS:
        raise RuntimeError(
            f"STORAGE_BACKEND '{backend}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_STORAGE_BACKENDS)}."
        )

    return StorageSettings(
        backend=backend,
        local_root_dir=_get_str_env("UPLOAD_STORAGE_DIR", "data/uploads"),
        public_base_url=_get_str_env("STORAGE_PUBLIC_BASE_URL", "http://localhost:8000/files"),
        signing_secret=_get_optional_str_env("STORAGE_SIGNING_SECRET"),
        supabase_url=_get_optional_str_env("SUPABASE_URL"),
        supabase_service_role_key=_get_optional_str_env("SUPABASE_SERVICE_ROLE_KEY"),
        supabase_bucket=_get_str_env("SUPABASE_STORAGE_BUCKET", "uploads"),
        http_timeout_seconds=max(1.0, _get_float_env("STORAGE_HTTP_TIMEOUT_SECONDS", 15.0)),
    )
