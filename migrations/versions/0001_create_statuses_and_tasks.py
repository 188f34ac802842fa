"""create statuses and tasks tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_statuses_and_tasks"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "statuses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=False, server_default="gray"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("workspace_id", sa.String(length=36), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="project"),
        sa.Column("project_id", sa.String(length=36), nullable=True),
        sa.Column("space_id", sa.String(length=36), nullable=True),
        sa.Column("sprint_id", sa.String(length=36), nullable=True),
        sa.Column("status_type", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_statuses_workspace_id", "statuses", ["workspace_id"], unique=False)
    op.create_index("ix_statuses_project_id", "statuses", ["project_id"], unique=False)
    op.create_index("ix_statuses_space_id", "statuses", ["space_id"], unique=False)
    op.create_index("ix_statuses_sprint_id", "statuses", ["sprint_id"], unique=False)

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status_id", sa.String(length=36), sa.ForeignKey("statuses.id"), nullable=False),
        sa.Column("priority", sa.String(length=20), nullable=False, server_default="none"),
        sa.Column("workspace_id", sa.String(length=36), nullable=False),
        sa.Column("space_id", sa.String(length=36), nullable=False),
        sa.Column("project_id", sa.String(length=36), nullable=True),
        sa.Column("sprint_id", sa.String(length=36), nullable=True),
        sa.Column(
            "parent_task_id",
            sa.String(length=36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("assignee_id", sa.String(length=36), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("time_estimate", sa.String(length=50), nullable=True),
        sa.Column("sprint_points", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tasks_code", "tasks", ["code"], unique=False)
    op.create_index("ix_tasks_status_id", "tasks", ["status_id"], unique=False)
    op.create_index("ix_tasks_workspace_id", "tasks", ["workspace_id"], unique=False)
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"], unique=False)
    op.create_index("ix_tasks_sprint_id", "tasks", ["sprint_id"], unique=False)
    op.create_index("ix_tasks_parent_task_id", "tasks", ["parent_task_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_tasks_parent_task_id", table_name="tasks")
    op.drop_index("ix_tasks_sprint_id", table_name="tasks")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_index("ix_tasks_workspace_id", table_name="tasks")
    op.drop_index("ix_tasks_status_id", table_name="tasks")
    op.drop_index("ix_tasks_code", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_statuses_sprint_id", table_name="statuses")
    op.drop_index("ix_statuses_space_id", table_name="statuses")
    op.drop_index("ix_statuses_project_id", table_name="statuses")
    op.drop_index("ix_statuses_workspace_id", table_name="statuses")
    op.drop_table("statuses")
