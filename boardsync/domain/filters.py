from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .entities import TaskEntity

SPRINT_POINTS_MIN = 0
SPRINT_POINTS_MAX = 100


@dataclass(frozen=True)
class FilterCriteria:
    statuses: frozenset[str] = frozenset()
    tags: frozenset[str] = frozenset()
    priorities: frozenset[str] = frozenset()
    assignees: frozenset[str] = frozenset()
    sprint_points_min: float = SPRINT_POINTS_MIN
    sprint_points_max: float = SPRINT_POINTS_MAX
    unassigned_only: bool = False

    @property
    def narrows_sprint_points(self) -> bool:
        return self.sprint_points_min > SPRINT_POINTS_MIN or self.sprint_points_max < SPRINT_POINTS_MAX

    @property
    def active_count(self) -> int:
        return (
            len(self.statuses)
            + len(self.tags)
            + len(self.priorities)
            + len(self.assignees)
            + (1 if self.narrows_sprint_points else 0)
            + (1 if self.unassigned_only else 0)
        )

    @property
    def is_empty(self) -> bool:
        return self.active_count == 0


def matches(task: TaskEntity, criteria: FilterCriteria) -> bool:
    if criteria.statuses and task.status_id not in criteria.statuses:
        return False

    if criteria.tags and not (task.tag_ids & criteria.tags):
        return False

    if criteria.priorities and task.priority not in criteria.priorities:
        return False

    if criteria.unassigned_only:
        if task.assignee_id:
            return False
    elif criteria.assignees:
        if not task.assignee_id or task.assignee_id not in criteria.assignees:
            return False

    # Tasks without sprint points are never excluded by the range.
    if criteria.narrows_sprint_points and task.sprint_points is not None:
        if not criteria.sprint_points_min <= task.sprint_points <= criteria.sprint_points_max:
            return False

    return True


def visible(tasks: Iterable[TaskEntity], criteria: FilterCriteria) -> list[TaskEntity]:
    tasks = list(tasks)
    if criteria.is_empty:
        return tasks
    return [task for task in tasks if matches(task, criteria)]


def group_by_status(tasks: Iterable[TaskEntity]) -> dict[str, list[TaskEntity]]:
    columns: dict[str, list[TaskEntity]] = {}
    for task in tasks:
        if task.is_subtask:
            continue
        columns.setdefault(task.status_id, []).append(task)
    return columns
