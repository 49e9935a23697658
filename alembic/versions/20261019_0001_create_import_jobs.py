"""create import_jobs and import_data_rows tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:30:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "import_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False, comment="Sanitized client filename, display only"),
        sa.Column("storage_path", sa.String(length=512), nullable=False),
        sa.Column("source_type", sa.String(length=16), nullable=False, comment="csv, excel"),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("reusable", sa.Boolean(), nullable=False),
        sa.Column("data_persisted", sa.Boolean(), nullable=False),
        sa.Column(
            "mime_type",
            sa.String(length=255),
            nullable=True,
            comment="Content type proven by content inspection",
        ),
        sa.Column("file_size_bytes", sa.BigInteger(), nullable=True),
        sa.Column("checksum", sa.String(length=64), nullable=True, comment="sha256 hex digest"),
        sa.Column("certificate_category", sa.String(length=255), nullable=True),
        sa.Column("certificate_subcategory", sa.String(length=255), nullable=True),
        sa.Column("template_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("storage_path"),
    )
    op.create_index("ix_import_jobs_created_at", "import_jobs", ["created_at"], unique=False)
    op.create_index("ix_import_jobs_status", "import_jobs", ["status"], unique=False)
    op.create_index("ix_import_jobs_tenant_id", "import_jobs", ["tenant_id"], unique=False)
    op.create_index("ix_import_jobs_tenant_status", "import_jobs", ["tenant_id", "status"], unique=False)

    op.create_table(
        "import_data_rows",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("import_job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False, comment="1-based position in parse order"),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["import_job_id"], ["import_jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("import_job_id", "row_number", name="uq_import_data_rows_job_row"),
    )
    op.create_index("ix_import_data_rows_import_job_id", "import_data_rows", ["import_job_id"], unique=False)
    op.create_index("ix_import_data_rows_tenant_id", "import_data_rows", ["tenant_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_import_data_rows_tenant_id", table_name="import_data_rows")
    op.drop_index("ix_import_data_rows_import_job_id", table_name="import_data_rows")
    op.drop_table("import_data_rows")
    op.drop_index("ix_import_jobs_tenant_status", table_name="import_jobs")
    op.drop_index("ix_import_jobs_tenant_id", table_name="import_jobs")
    op.drop_index("ix_import_jobs_status", table_name="import_jobs")
    op.drop_index("ix_import_jobs_created_at", table_name="import_jobs")
    op.drop_table("import_jobs")
