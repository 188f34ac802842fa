from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from boardsync.domain.drag import IDLE, DragSession
from boardsync.domain.entities import StatusEntity, TaskEntity
from boardsync.domain.filters import FilterCriteria, group_by_status, visible

logger = logging.getLogger(__name__)

Listener = Callable[["BoardSnapshot"], None]


@dataclass(frozen=True)
class SubtaskCache:
    all: tuple[TaskEntity, ...] = ()
    by_parent: Mapping[str, tuple[TaskEntity, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_tasks(cls, tasks: Iterable[TaskEntity]) -> "SubtaskCache":
        subtasks = tuple(task for task in tasks if task.parent_task_id)
        grouped: dict[str, list[TaskEntity]] = {}
        for task in subtasks:
            grouped.setdefault(task.parent_task_id, []).append(task)
        return cls(
            all=subtasks,
            by_parent=MappingProxyType({key: tuple(value) for key, value in grouped.items()}),
        )

    def for_parent(self, task_id: str) -> tuple[TaskEntity, ...]:
        return self.by_parent.get(task_id, ())


@dataclass(frozen=True)
class BoardSnapshot:
    tasks: tuple[TaskEntity, ...] = ()
    statuses: tuple[StatusEntity, ...] = ()
    subtasks: SubtaskCache = field(default_factory=SubtaskCache)
    filters: FilterCriteria = field(default_factory=FilterCriteria)
    drag: DragSession = IDLE
    loading: bool = False

    def task(self, task_id: str) -> TaskEntity | None:
        return next((task for task in self.tasks if task.id == task_id), None)

    def status(self, status_id: str) -> StatusEntity | None:
        return next((status for status in self.statuses if status.id == status_id), None)


_FIELDS = frozenset(item.name for item in fields(BoardSnapshot))
_TUPLE_FIELDS = ("tasks", "statuses")


class BoardStore:
    """Single source of truth for the board.

    The only write path is ``merge``: it builds the next snapshot first and
    swaps it in with one assignment, so listeners never see a half-applied
    change. Untouched fields keep their identity across merges.
    """

    def __init__(self, snapshot: BoardSnapshot | None = None) -> None:
        self._snapshot = snapshot or BoardSnapshot()
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> BoardSnapshot:
        return self._snapshot

    def merge(self, **changes) -> BoardSnapshot:
        unknown = set(changes) - _FIELDS
        if unknown:
            raise TypeError(f"Unknown board fields: {', '.join(sorted(unknown))}")
        for key in _TUPLE_FIELDS:
            if key in changes and not isinstance(changes[key], tuple):
                changes[key] = tuple(changes[key])
        if not changes:
            return self._snapshot

        self._snapshot = replace(self._snapshot, **changes)
        snapshot = self._snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001
                logger.exception("Board listener failed")
        return snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def visible_tasks(self) -> list[TaskEntity]:
        return visible(self._snapshot.tasks, self._snapshot.filters)

    def columns(self) -> dict[str, list[TaskEntity]]:
        columns = {status.id: [] for status in self._snapshot.statuses}
        columns.update(group_by_status(self.visible_tasks()))
        return columns
