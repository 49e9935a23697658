"""
db/models/import_job.py

Import job model: one uploaded tabular file and its ingestion bookkeeping.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.import_data_row import ImportDataRowRecord


class ImportJobStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportJobRecord(Base, TimestampMixin):
    """
    Persisted import job.

    storage_path is generated server-side and never derived from file_name;
    file_name is the sanitized client filename kept for display and audit.
    """

    __tablename__ = "import_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Sanitized client filename, display only",
    )
    storage_path: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    source_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="csv, excel",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ImportJobStatus.PENDING,
    )
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reusable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    data_persisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mime_type: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Content type proven by content inspection",
    )
    file_size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    checksum: Mapped[str | None] = mapped_column(String(64), nullable=True, comment="sha256 hex digest")
    certificate_category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    certificate_subcategory: Mapped[str | None] = mapped_column(String(255), nullable=True)
    template_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    rows: Mapped[list["ImportDataRowRecord"]] = relationship(
        "ImportDataRowRecord",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_import_jobs_tenant_id", "tenant_id"),
        Index("ix_import_jobs_status", "status"),
        Index("ix_import_jobs_created_at", "created_at"),
        Index("ix_import_jobs_tenant_status", "tenant_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ImportJobRecord id={self.id} tenant_id={self.tenant_id!r} "
            f"status={self.status!r} total_rows={self.total_rows}>"
        )
