"""add activities table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0004_add_activities"
down_revision = "0003_add_external_sync"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "activities",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("entity_type", sa.String(length=20), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("entity_name", sa.String(length=200), nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=False),
        sa.Column("workspace_id", sa.String(length=36), nullable=False),
        sa.Column("space_id", sa.String(length=36), nullable=True),
        sa.Column("project_id", sa.String(length=36), nullable=True),
        sa.Column("parent_task_id", sa.String(length=36), nullable=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_activities_entity_id", "activities", ["entity_id"], unique=False)
    op.create_index("ix_activities_workspace_id", "activities", ["workspace_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_activities_workspace_id", table_name="activities")
    op.drop_index("ix_activities_entity_id", table_name="activities")
    op.drop_table("activities")
