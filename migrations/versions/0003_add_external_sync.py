"""add external tracker sync columns"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0003_add_external_sync"
down_revision = "0002_add_tags"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("tasks", sa.Column("type", sa.String(length=20), nullable=False, server_default="native"))
    for table in ("tasks", "statuses"):
        op.add_column(table, sa.Column("external_id", sa.String(length=100), nullable=True))
        op.add_column(
            table,
            sa.Column("pending_sync", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        )
        op.add_column(table, sa.Column("sync_status", sa.String(length=20), nullable=True))


def downgrade() -> None:
    for table in ("statuses", "tasks"):
        op.drop_column(table, "sync_status")
        op.drop_column(table, "pending_sync")
        op.drop_column(table, "external_id")
    op.drop_column("tasks", "type")
