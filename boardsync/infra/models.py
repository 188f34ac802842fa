from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    return datetime.utcnow()


def new_id() -> str:
    return str(uuid.uuid4())


task_tags = Table(
    "task_tags",
    Base.metadata,
    Column("task_id", String(36), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(36), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class StatusModel(Base):
    __tablename__ = "statuses"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    color = Column(String(20), nullable=False, default="gray")
    position = Column(Integer, nullable=False, default=0)
    workspace_id = Column(String(36), nullable=False, index=True)
    type = Column(String(20), nullable=False, default="project")
    project_id = Column(String(36), nullable=True, index=True)
    space_id = Column(String(36), nullable=True, index=True)
    sprint_id = Column(String(36), nullable=True, index=True)
    status_type = Column(String(20), nullable=True)
    external_id = Column(String(100), nullable=True)
    pending_sync = Column(Boolean, nullable=False, default=False)
    sync_status = Column(String(20), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TagModel(Base):
    __tablename__ = "tags"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    color = Column(String(20), nullable=False, default="gray")
    workspace_id = Column(String(36), nullable=False, index=True)


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=new_id)
    code = Column(String(32), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status_id = Column(String(36), ForeignKey("statuses.id"), nullable=False, index=True)
    priority = Column(String(20), nullable=False, default="none")
    workspace_id = Column(String(36), nullable=False, index=True)
    space_id = Column(String(36), nullable=False)
    project_id = Column(String(36), nullable=True, index=True)
    sprint_id = Column(String(36), nullable=True, index=True)
    parent_task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    assignee_id = Column(String(36), nullable=True)
    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    time_estimate = Column(String(50), nullable=True)
    sprint_points = Column(Float, nullable=True)
    type = Column(String(20), nullable=False, default="native")
    external_id = Column(String(100), nullable=True)
    pending_sync = Column(Boolean, nullable=False, default=False)
    sync_status = Column(String(20), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tags = relationship(TagModel, secondary=task_tags, lazy="selectin")
    subtasks = relationship("TaskModel", cascade="all, delete-orphan")


class ActivityModel(Base):
    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=new_id)
    type = Column(String(20), nullable=False)
    entity_type = Column(String(20), nullable=False)
    entity_id = Column(String(36), nullable=False, index=True)
    entity_name = Column(String(200), nullable=False)
    actor_id = Column(String(36), nullable=False)
    workspace_id = Column(String(36), nullable=False, index=True)
    space_id = Column(String(36), nullable=True)
    project_id = Column(String(36), nullable=True)
    parent_task_id = Column(String(36), nullable=True)
    description = Column(Text, nullable=False, default="")
    details = Column("metadata", JSON, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
