from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from boardsync.domain.entities import BoardScope, ChangeEvent, StatusEntity, TaskEntity
from boardsync.domain.enums import ChangeKind, EntityClass, Priority, StatusColor, StatusScope
from boardsync.services.board import BoardSession
from boardsync.services.gateway import GatewayResult

WORKSPACE = "ws-1"
SPACE = "space-1"
PROJECT = "proj-1"
ACTOR = "user-1"

SCOPE = BoardScope(
    workspace_id=WORKSPACE,
    space_id=SPACE,
    project_id=PROJECT,
    project_name="Apollo",
    space_name="Engineering",
)


def make_status(status_id: str, name: str, position: int, **kwargs) -> StatusEntity:
    kwargs.setdefault("project_id", PROJECT)
    return StatusEntity(id=status_id, name=name, position=position, workspace_id=WORKSPACE, **kwargs)


def make_task(task_id: str, name: str, status_id: str, **kwargs) -> TaskEntity:
    kwargs.setdefault("code", f"TASK-{task_id}")
    kwargs.setdefault("project_id", PROJECT)
    return TaskEntity(
        id=task_id,
        name=name,
        status_id=status_id,
        workspace_id=WORKSPACE,
        space_id=SPACE,
        **kwargs,
    )


class FakeGateway:
    """Holds the server-side truth in memory.

    ``failing`` names operations that return a failure; ``holds`` maps an
    operation to events that successive calls wait on before landing.
    """

    def __init__(self, tasks=(), statuses=(), feed=None) -> None:
        self.tasks: dict[str, TaskEntity] = {task.id: task for task in tasks}
        self.statuses: dict[str, StatusEntity] = {status.id: status for status in statuses}
        self.feed = feed
        self.calls: list[tuple] = []
        self.failing: set[str] = set()
        self.holds: dict[str, list[asyncio.Event]] = {}

    def writes(self) -> list[tuple]:
        return [call for call in self.calls if not call[0].startswith("fetch")]

    async def _enter(self, name: str, *args) -> bool:
        self.calls.append((name, *args))
        queue = self.holds.get(name)
        if queue:
            await queue.pop(0).wait()
        return name in self.failing

    def _publish(self, entity_class: EntityClass, kind: ChangeKind, entity_id: str) -> None:
        if self.feed is not None:
            self.feed.publish(
                ChangeEvent(
                    entity_class=entity_class,
                    kind=kind,
                    entity_id=entity_id,
                    workspace_id=WORKSPACE,
                    project_id=PROJECT,
                )
            )

    async def fetch_tasks(self, scope):
        if await self._enter("fetch_tasks", scope):
            return GatewayResult.failure("fetch tasks failed")
        return GatewayResult.success(sorted(self.tasks.values(), key=lambda t: t.code))

    async def fetch_subtasks(self, scope):
        if await self._enter("fetch_subtasks", scope):
            return GatewayResult.failure("fetch subtasks failed")
        tasks = sorted(self.tasks.values(), key=lambda t: t.code)
        return GatewayResult.success([t for t in tasks if t.parent_task_id])

    async def fetch_statuses(self, scope):
        if await self._enter("fetch_statuses", scope):
            return GatewayResult.failure("fetch statuses failed")
        return GatewayResult.success(sorted(self.statuses.values(), key=lambda s: s.position))

    async def update_task(self, task_id, fields):
        if await self._enter("update_task", task_id, dict(fields)):
            return GatewayResult.failure("update rejected")
        if task_id not in self.tasks:
            return GatewayResult.failure(f"Task {task_id} not found")
        self.tasks[task_id] = replace(self.tasks[task_id], **fields)
        self._publish(EntityClass.TASKS, ChangeKind.UPDATE, task_id)
        return GatewayResult.success(self.tasks[task_id])

    async def create_task(self, data):
        data = dict(data)
        if await self._enter("create_task", dict(data)):
            return GatewayResult.failure("create rejected")
        task_id = f"new-{len(self.tasks) + 1}"
        for key in ("workspace_id", "space_id"):
            data.pop(key)
        task = make_task(task_id, data.pop("name"), data.pop("status_id"), **data)
        self.tasks[task_id] = task
        self._publish(EntityClass.TASKS, ChangeKind.INSERT, task_id)
        return GatewayResult.success(task)

    async def create_status(self, data):
        data = dict(data)
        if await self._enter("create_status", dict(data)):
            return GatewayResult.failure("create rejected")
        status = StatusEntity(
            id=f"status-{len(self.statuses) + 1}",
            name=data["name"],
            position=len(self.statuses),
            workspace_id=data["workspace_id"],
            scope=StatusScope(data["type"]),
            project_id=data.get("project_id"),
            sprint_id=data.get("sprint_id"),
            color=StatusColor(data.get("color", StatusColor.GRAY)),
        )
        self.statuses[status.id] = status
        self._publish(EntityClass.STATUSES, ChangeKind.INSERT, status.id)
        return GatewayResult.success(status)

    async def set_task_tags(self, task_id, tag_ids, fields):
        if await self._enter("set_task_tags", task_id, frozenset(tag_ids), dict(fields)):
            return GatewayResult.failure("tags rejected")
        self.tasks[task_id] = replace(self.tasks[task_id], tag_ids=frozenset(tag_ids), **fields)
        self._publish(EntityClass.TASKS, ChangeKind.UPDATE, task_id)
        return GatewayResult.success()

    async def delete_task(self, task_id):
        if await self._enter("delete_task", task_id):
            return GatewayResult.failure("delete rejected")
        doomed = {task_id} | {t.id for t in self.tasks.values() if t.parent_task_id == task_id}
        for doomed_id in doomed:
            self.tasks.pop(doomed_id, None)
        self._publish(EntityClass.TASKS, ChangeKind.DELETE, task_id)
        return GatewayResult.success()

    async def bulk_upsert_statuses(self, statuses):
        statuses = list(statuses)
        if await self._enter("bulk_upsert_statuses", statuses):
            return GatewayResult.failure("upsert rejected")
        for status in statuses:
            self.statuses[status.id] = status
            self._publish(EntityClass.STATUSES, ChangeKind.UPDATE, status.id)
        return GatewayResult.success()

    async def update_status(self, status_id, fields):
        if await self._enter("update_status", status_id, dict(fields)):
            return GatewayResult.failure("status update rejected")
        self.statuses[status_id] = replace(self.statuses[status_id], **fields)
        self._publish(EntityClass.STATUSES, ChangeKind.UPDATE, status_id)
        return GatewayResult.success(self.statuses[status_id])

    async def delete_status(self, status_id, fallback_status_id, remaining):
        remaining = list(remaining)
        if await self._enter("delete_status", status_id, fallback_status_id, remaining):
            return GatewayResult.failure("status delete rejected")
        for task in list(self.tasks.values()):
            if task.status_id == status_id:
                self.tasks[task.id] = replace(task, status_id=fallback_status_id)
        self.statuses.pop(status_id, None)
        for status in remaining:
            self.statuses[status.id] = status
        self._publish(EntityClass.STATUSES, ChangeKind.DELETE, status_id)
        return GatewayResult.success()


class RecordingSink:
    def __init__(self) -> None:
        self.entries = []
        self.failing = False

    async def record(self, entry) -> None:
        if self.failing:
            raise RuntimeError("activity log unavailable")
        self.entries.append(entry)


class RecordingNotifier:
    def __init__(self) -> None:
        self.errors: list[tuple[str, str]] = []
        self.successes: list[tuple[str, str]] = []

    def success(self, title: str, message: str = "") -> None:
        self.successes.append((title, message))

    def error(self, title: str, message: str = "") -> None:
        self.errors.append((title, message))


class NullFeed:
    def subscribe(self, scope, entity_class, on_event):
        return (scope, entity_class)

    def unsubscribe(self, handle) -> None:
        pass


def default_statuses() -> list[StatusEntity]:
    return [
        make_status("todo", "Todo", 0),
        make_status("doing", "Doing", 1),
        make_status("done", "Done", 2),
    ]


def default_tasks() -> list[TaskEntity]:
    return [
        make_task("t1", "Write brief", "todo", priority=Priority.HIGH, assignee_id="user-2"),
        make_task("t2", "Review brief", "doing", priority=Priority.LOW),
        make_task("t3", "Collect notes", "todo", parent_task_id="t1"),
    ]


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(default_tasks(), default_statuses())


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_session(sink, notifier):
    def _make(gateway, feed=None, scope=SCOPE, actor_id=ACTOR) -> BoardSession:
        return BoardSession(scope, gateway, feed or NullFeed(), sink, actor_id, notifier=notifier)

    return _make


async def settle(session: BoardSession) -> None:
    for _ in range(3):
        await asyncio.sleep(0)
        await session.reconciler.wait_idle()
    await session.activity.drain()
