from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - No empty-string values are accepted.
    - SQLite and local file database URLs are not permitted.
    - STORAGE_BACKEND must be one of the supported backends.
    - Supabase credentials are required whenever STORAGE_BACKEND=supabase.
    - IMPORT_STORAGE_BUCKET must be one of the allowed storage roots.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    configured_url = database_url or cloud_database_url or local_database_url
    if not configured_url:
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL or LOCAL_DATABASE_URL."
        )
    elif configured_url.startswith("sqlite"):
        errors.append("SQLite database URLs are not permitted; configure PostgreSQL.")

    # --- Storage backend ------------------------------------------------
    backend = os.getenv("STORAGE_BACKEND", "local").strip().lower()
    if backend not in {"local", "supabase"}:
        errors.append(
            f"STORAGE_BACKEND='{backend}' is not valid. Allowed values: ['local', 'supabase']."
        )
    elif backend == "supabase":
        for name in ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"):
            if not os.getenv(name, "").strip():
                errors.append(f"{name} is not set but STORAGE_BACKEND is supabase.")
    elif not os.getenv("STORAGE_SIGNING_SECRET", "").strip():
        logging.getLogger(__name__).warning(
            "STORAGE_SIGNING_SECRET is not set; local download links will not survive a restart."
        )

    # --- Import bucket ---------------------------------------------------
    from uploads.naming import ALLOWED_STORAGE_ROOTS

    bucket = os.getenv("IMPORT_STORAGE_BUCKET", "file_imports").strip()
    if bucket not in ALLOWED_STORAGE_ROOTS:
        errors.append(
            f"IMPORT_STORAGE_BUCKET='{bucket}' is not valid. Allowed values: {list(ALLOWED_STORAGE_ROOTS)}."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed: missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database.
    If any are missing, log a critical error and abort startup so that
    the operator is forced to run migrations before serving traffic.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema before serving traffic."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")

    from app.config import get_storage_settings

    logging.getLogger(__name__).info("Upload storage backend=%s", get_storage_settings().backend)
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Import Ingestion API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import import_jobs_router

    application.include_router(import_jobs_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
