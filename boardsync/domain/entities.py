from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from .enums import (
    ActivityType,
    ChangeKind,
    EntityClass,
    EntityType,
    Priority,
    StatusColor,
    StatusScope,
    StatusType,
    TaskSource,
)


@dataclass(frozen=True)
class TaskEntity:
    id: str
    code: str
    name: str
    status_id: str
    workspace_id: str
    space_id: str
    project_id: str | None = None
    sprint_id: str | None = None
    description: str | None = None
    priority: Priority = Priority.NONE
    parent_task_id: str | None = None
    assignee_id: str | None = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    time_estimate: str | None = None
    sprint_points: float | None = None
    tag_ids: frozenset[str] = frozenset()
    source: TaskSource = TaskSource.NATIVE
    external_id: str | None = None
    pending_sync: bool = False
    sync_status: str | None = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_subtask(self) -> bool:
        return self.parent_task_id is not None

    @property
    def is_mirrored(self) -> bool:
        return self.source == TaskSource.JIRA and bool(self.external_id)


@dataclass(frozen=True)
class StatusEntity:
    id: str
    name: str
    position: int
    workspace_id: str
    scope: StatusScope = StatusScope.PROJECT
    project_id: str | None = None
    space_id: str | None = None
    sprint_id: str | None = None
    color: StatusColor = StatusColor.GRAY
    status_type: StatusType | None = None
    external_id: str | None = None
    pending_sync: bool = False
    sync_status: str | None = None


@dataclass(frozen=True)
class BoardScope:
    """The (workspace, project|space|sprint) tuple a board operates over."""

    workspace_id: str
    space_id: str
    project_id: str | None = None
    sprint_id: str | None = None
    project_name: str = ""
    space_name: str = ""
    external_tracker: bool = False

    @property
    def is_sprint(self) -> bool:
        return self.sprint_id is not None

    @property
    def feed_key(self) -> str | None:
        return self.sprint_id if self.is_sprint else self.project_id


@dataclass(frozen=True)
class ActivityEntry:
    type: ActivityType
    entity_type: EntityType
    entity_id: str
    entity_name: str
    actor_id: str
    workspace_id: str
    description: str
    space_id: str | None = None
    project_id: str | None = None
    parent_task_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChangeEvent:
    entity_class: EntityClass
    kind: ChangeKind
    entity_id: str
    workspace_id: str | None = None
    project_id: str | None = None
    sprint_id: str | None = None
