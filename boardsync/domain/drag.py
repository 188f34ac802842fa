from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Sequence, TypeVar, Union

from .entities import StatusEntity, TaskEntity

DEFAULT_DROP_ZONE_PREFIX = "status-"

TASK_PAYLOAD = "task"
STATUS_PAYLOAD = "status"

T = TypeVar("T")


@dataclass(frozen=True)
class ColumnTarget:
    status_id: str


@dataclass(frozen=True)
class TaskTarget:
    task_id: str


@dataclass(frozen=True)
class _NoTarget:
    def __bool__(self) -> bool:
        return False


NO_TARGET = _NoTarget()

DropTarget = Union[ColumnTarget, TaskTarget, _NoTarget]


@dataclass(frozen=True)
class DragSession:
    active_task: TaskEntity | None = None
    active_status: StatusEntity | None = None

    def __post_init__(self) -> None:
        if self.active_task is not None and self.active_status is not None:
            raise ValueError("A drag session holds either a task or a status, not both")

    @property
    def is_idle(self) -> bool:
        return self.active_task is None and self.active_status is None


IDLE = DragSession()


def resolve_drop_target(
    raw_id: str | None,
    statuses: Iterable[StatusEntity],
    tasks: Iterable[TaskEntity],
    prefix: str = DEFAULT_DROP_ZONE_PREFIX,
) -> DropTarget:
    """Turn a raw drop id coming from the UI into a typed target.

    Order: a status id, then a prefixed column drop zone, then a task id.
    Anything else (including empty canvas) is NO_TARGET.
    """
    if not raw_id:
        return NO_TARGET
    status_ids = {status.id for status in statuses}
    if raw_id in status_ids:
        return ColumnTarget(raw_id)
    if prefix and raw_id.startswith(prefix):
        stripped = raw_id[len(prefix):]
        if stripped in status_ids:
            return ColumnTarget(stripped)
    if any(task.id == raw_id for task in tasks):
        return TaskTarget(raw_id)
    return NO_TARGET


def parse_drag_payload(text: str | None) -> tuple[str, str] | None:
    if not text or ":" not in text:
        return None
    kind, _, entity_id = text.partition(":")
    if kind not in (TASK_PAYLOAD, STATUS_PAYLOAD) or not entity_id:
        return None
    return kind, entity_id


def drag_payload(kind: str, entity_id: str) -> str:
    return f"{kind}:{entity_id}"


def array_move(items: Sequence[T], old_index: int, new_index: int) -> list[T]:
    moved = list(items)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


def reindex(statuses: Iterable[StatusEntity]) -> list[StatusEntity]:
    return [
        status if status.position == index else replace(status, position=index)
        for index, status in enumerate(statuses)
    ]


def index_of(items: Sequence, entity_id: str) -> int:
    return next((index for index, item in enumerate(items) if item.id == entity_id), -1)
