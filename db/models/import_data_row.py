"""
db/models/import_data_row.py

One parsed row of an import job, stored only for reusable imports.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, JSONDocument

if TYPE_CHECKING:
    from db.models.import_job import ImportJobRecord


class ImportDataRowRecord(Base):
    __tablename__ = "import_data_rows"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    import_job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("import_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    row_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="1-based position in parse order",
    )
    data: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    job: Mapped["ImportJobRecord"] = relationship("ImportJobRecord", back_populates="rows")

    __table_args__ = (
        UniqueConstraint("import_job_id", "row_number", name="uq_import_data_rows_job_row"),
        Index("ix_import_data_rows_tenant_id", "tenant_id"),
        Index("ix_import_data_rows_import_job_id", "import_job_id"),
    )
