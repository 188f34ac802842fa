from __future__ import annotations

from enum import StrEnum


class Priority(StrEnum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class StatusScope(StrEnum):
    PROJECT = "project"
    SPACE = "space"
    SPRINT = "sprint"


class StatusType(StrEnum):
    NOT_STARTED = "not-started"
    ACTIVE = "active"
    DONE = "done"
    CLOSED = "closed"


class StatusColor(StrEnum):
    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    PURPLE = "purple"
    PINK = "pink"
    INDIGO = "indigo"
    ORANGE = "orange"
    TEAL = "teal"
    CYAN = "cyan"
    GRAY = "gray"


class TaskSource(StrEnum):
    NATIVE = "native"
    JIRA = "jira"


class SyncStatus(StrEnum):
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


class ActivityType(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    REORDERED = "reordered"


class EntityType(StrEnum):
    TASK = "task"
    SUBTASK = "subtask"
    STATUS = "status"


class EntityClass(StrEnum):
    TASKS = "tasks"
    STATUSES = "statuses"


class ChangeKind(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
