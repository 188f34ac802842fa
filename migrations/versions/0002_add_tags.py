"""add tags and task_tags"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_add_tags"
down_revision = "0001_create_statuses_and_tasks"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tags",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=False, server_default="gray"),
        sa.Column("workspace_id", sa.String(length=36), nullable=False),
    )
    op.create_index("ix_tags_workspace_id", "tags", ["workspace_id"], unique=False)

    op.create_table(
        "task_tags",
        sa.Column(
            "task_id",
            sa.String(length=36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.String(length=36),
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("task_tags")
    op.drop_index("ix_tags_workspace_id", table_name="tags")
    op.drop_table("tags")
