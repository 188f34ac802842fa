from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from boardsync.domain.entities import BoardScope, StatusEntity, TaskEntity
from boardsync.domain.enums import (
    Priority,
    StatusColor,
    StatusScope,
    StatusType,
    TaskSource,
)
from boardsync.services.gateway import GatewayResult

from .db import SessionLocal
from .models import StatusModel, TagModel, TaskModel

logger = logging.getLogger(__name__)

TASK_CODE_PREFIX = "TASK"

TASK_FIELDS = {
    "name",
    "description",
    "status_id",
    "priority",
    "assignee_id",
    "start_date",
    "due_date",
    "time_estimate",
    "sprint_points",
    "pending_sync",
    "sync_status",
    "sprint_id",
}

STATUS_FIELDS = {"name", "color", "status_type", "pending_sync", "sync_status"}


class RecordNotFound(LookupError):
    pass


def _to_task(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        code=model.code,
        name=model.name,
        description=model.description,
        status_id=model.status_id,
        priority=Priority(model.priority or Priority.NONE.value),
        workspace_id=model.workspace_id,
        space_id=model.space_id,
        project_id=model.project_id,
        sprint_id=model.sprint_id,
        parent_task_id=model.parent_task_id,
        assignee_id=model.assignee_id,
        start_date=model.start_date,
        due_date=model.due_date,
        time_estimate=model.time_estimate,
        sprint_points=model.sprint_points,
        tag_ids=frozenset(tag.id for tag in model.tags),
        source=TaskSource(model.type or TaskSource.NATIVE.value),
        external_id=model.external_id,
        pending_sync=bool(model.pending_sync),
        sync_status=model.sync_status,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _to_status(model: StatusModel) -> StatusEntity:
    return StatusEntity(
        id=model.id,
        name=model.name,
        position=model.position,
        workspace_id=model.workspace_id,
        scope=StatusScope(model.type),
        project_id=model.project_id,
        space_id=model.space_id,
        sprint_id=model.sprint_id,
        color=StatusColor(model.color),
        status_type=StatusType(model.status_type) if model.status_type else None,
        external_id=model.external_id,
        pending_sync=bool(model.pending_sync),
        sync_status=model.sync_status,
    )


def _column_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def _check_columns(model, data: dict[str, Any]) -> None:
    unknown = set(data) - set(model.__table__.columns.keys())
    if unknown:
        raise ValueError(f"Unknown {model.__tablename__} columns: {', '.join(sorted(unknown))}")


def _apply_task_fields(task: TaskModel, fields: dict[str, Any]) -> None:
    unknown = set(fields) - TASK_FIELDS
    if unknown:
        raise ValueError(f"Cannot update task fields: {', '.join(sorted(unknown))}")
    if "priority" in fields:
        fields = {**fields, "priority": Priority(fields["priority"] or Priority.NONE.value)}
    for key, value in fields.items():
        setattr(task, key, _column_value(value))


def _apply_status_fields(status: StatusModel, fields: dict[str, Any]) -> None:
    unknown = set(fields) - STATUS_FIELDS
    if unknown:
        raise ValueError(f"Cannot update status fields: {', '.join(sorted(unknown))}")
    if "color" in fields:
        fields = {**fields, "color": StatusColor(fields["color"])}
    if fields.get("status_type"):
        fields = {**fields, "status_type": StatusType(fields["status_type"])}
    for key, value in fields.items():
        setattr(status, key, _column_value(value))


def _task_scope_clause(scope: BoardScope):
    if scope.is_sprint:
        return TaskModel.sprint_id == scope.sprint_id
    return TaskModel.project_id == scope.project_id


def _status_scope_clause(scope: BoardScope):
    if scope.is_sprint:
        return and_(
            StatusModel.workspace_id == scope.workspace_id,
            StatusModel.type == StatusScope.SPRINT.value,
            StatusModel.sprint_id == scope.sprint_id,
        )
    return and_(
        StatusModel.workspace_id == scope.workspace_id,
        or_(
            and_(StatusModel.type == StatusScope.SPACE.value, StatusModel.space_id == scope.space_id),
            and_(StatusModel.type == StatusScope.PROJECT.value, StatusModel.project_id == scope.project_id),
        ),
    )


class SqlBoardGateway:
    """Persistence gateway over SQLAlchemy.

    Each call runs one session on a worker thread and commits once, so a
    multi-row write either lands completely or not at all.
    """

    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    async def _call(self, label: str, func: Callable, *args) -> GatewayResult:
        try:
            data = await asyncio.to_thread(func, *args)
        except (SQLAlchemyError, LookupError, ValueError) as exc:
            logger.error("%s failed: %s", label, exc)
            return GatewayResult.failure(str(exc))
        return GatewayResult.success(data)

    async def fetch_tasks(self, scope: BoardScope) -> GatewayResult[list[TaskEntity]]:
        return await self._call("fetch_tasks", self._fetch_tasks, scope, False)

    async def fetch_subtasks(self, scope: BoardScope) -> GatewayResult[list[TaskEntity]]:
        return await self._call("fetch_subtasks", self._fetch_tasks, scope, True)

    async def fetch_statuses(self, scope: BoardScope) -> GatewayResult[list[StatusEntity]]:
        return await self._call("fetch_statuses", self._fetch_statuses, scope)

    async def update_task(self, task_id: str, fields: dict[str, Any]) -> GatewayResult[TaskEntity]:
        return await self._call("update_task", self._update_task, task_id, dict(fields))

    async def set_task_tags(
        self, task_id: str, tag_ids: frozenset[str], fields: dict[str, Any]
    ) -> GatewayResult[None]:
        return await self._call("set_task_tags", self._set_task_tags, task_id, frozenset(tag_ids), dict(fields))

    async def delete_task(self, task_id: str) -> GatewayResult[None]:
        return await self._call("delete_task", self._delete_task, task_id)

    async def create_task(self, data: dict[str, Any]) -> GatewayResult[TaskEntity]:
        return await self._call("create_task", self._create_task, dict(data))

    async def bulk_upsert_statuses(self, statuses: Sequence[StatusEntity]) -> GatewayResult[None]:
        return await self._call("bulk_upsert_statuses", self._bulk_upsert_statuses, list(statuses))

    async def update_status(self, status_id: str, fields: dict[str, Any]) -> GatewayResult[StatusEntity]:
        return await self._call("update_status", self._update_status, status_id, dict(fields))

    async def create_status(self, data: dict[str, Any]) -> GatewayResult[StatusEntity]:
        return await self._call("create_status", self._create_status, dict(data))

    async def delete_status(
        self,
        status_id: str,
        fallback_status_id: str | None,
        remaining: Sequence[StatusEntity],
    ) -> GatewayResult[None]:
        return await self._call(
            "delete_status", self._delete_status, status_id, fallback_status_id, list(remaining)
        )

    def _fetch_tasks(self, scope: BoardScope, subtasks_only: bool) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = select(TaskModel).where(_task_scope_clause(scope))
            if subtasks_only:
                stmt = stmt.where(TaskModel.parent_task_id.is_not(None))
            stmt = stmt.order_by(TaskModel.created_at.asc(), TaskModel.code.asc())
            return [_to_task(task) for task in session.scalars(stmt)]

    def _fetch_statuses(self, scope: BoardScope) -> list[StatusEntity]:
        with self._session_factory() as session:
            stmt = (
                select(StatusModel)
                .where(_status_scope_clause(scope))
                .order_by(StatusModel.position.asc())
            )
            return [_to_status(status) for status in session.scalars(stmt)]

    def _update_task(self, task_id: str, fields: dict[str, Any]) -> TaskEntity:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task:
                raise RecordNotFound(f"Task {task_id} not found")
            _apply_task_fields(task, fields)
            session.commit()
            session.refresh(task)
            return _to_task(task)

    def _set_task_tags(self, task_id: str, tag_ids: frozenset[str], fields: dict[str, Any]) -> None:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task:
                raise RecordNotFound(f"Task {task_id} not found")
            tags = list(session.scalars(select(TagModel).where(TagModel.id.in_(tag_ids)))) if tag_ids else []
            missing = tag_ids - {tag.id for tag in tags}
            if missing:
                raise RecordNotFound(f"Unknown tags: {', '.join(sorted(missing))}")
            task.tags = tags
            _apply_task_fields(task, fields)
            session.commit()

    def _delete_task(self, task_id: str) -> None:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task:
                return
            session.delete(task)
            session.commit()

    def _create_task(self, data: dict[str, Any]) -> TaskEntity:
        with self._session_factory() as session:
            tag_ids = frozenset(data.pop("tag_ids", ()))
            _check_columns(TaskModel, data)
            if not data.get("code"):
                data["code"] = self._next_code(session, data["workspace_id"])
            for key in ("priority", "type"):
                if key in data:
                    data[key] = _column_value(data[key])
            task = TaskModel(**data)
            if tag_ids:
                task.tags = list(session.scalars(select(TagModel).where(TagModel.id.in_(tag_ids))))
            session.add(task)
            session.commit()
            session.refresh(task)
            return _to_task(task)

    def _bulk_upsert_statuses(self, statuses: list[StatusEntity]) -> None:
        with self._session_factory() as session:
            for entity in statuses:
                status = session.get(StatusModel, entity.id)
                if status is None:
                    status = StatusModel(id=entity.id)
                    session.add(status)
                status.name = entity.name
                status.color = _column_value(entity.color)
                status.position = entity.position
                status.workspace_id = entity.workspace_id
                status.type = _column_value(entity.scope)
                status.project_id = entity.project_id
                status.space_id = entity.space_id
                status.sprint_id = entity.sprint_id
                status.status_type = _column_value(entity.status_type)
                status.external_id = entity.external_id
                status.pending_sync = entity.pending_sync
                status.sync_status = entity.sync_status
            session.commit()

    def _update_status(self, status_id: str, fields: dict[str, Any]) -> StatusEntity:
        with self._session_factory() as session:
            status = session.get(StatusModel, status_id)
            if not status:
                raise RecordNotFound(f"Status {status_id} not found")
            _apply_status_fields(status, fields)
            session.commit()
            session.refresh(status)
            return _to_status(status)

    def _create_status(self, data: dict[str, Any]) -> StatusEntity:
        with self._session_factory() as session:
            _check_columns(StatusModel, data)
            for key in ("color", "type", "status_type"):
                if key in data:
                    data[key] = _column_value(data[key])
            if data.get("position") is None:
                data["position"] = self._next_position(session, data)
            status = StatusModel(**data)
            session.add(status)
            session.commit()
            session.refresh(status)
            return _to_status(status)

    def _delete_status(
        self,
        status_id: str,
        fallback_status_id: str | None,
        remaining: list[StatusEntity],
    ) -> None:
        with self._session_factory() as session:
            status = session.get(StatusModel, status_id)
            if not status:
                raise RecordNotFound(f"Status {status_id} not found")
            orphans = list(session.scalars(select(TaskModel).where(TaskModel.status_id == status_id)))
            if orphans and not fallback_status_id:
                raise ValueError(f'Status "{status.name}" still holds {len(orphans)} task(s)')
            for task in orphans:
                task.status_id = fallback_status_id
            session.flush()
            session.delete(status)
            for entity in remaining:
                kept = session.get(StatusModel, entity.id)
                if kept is not None:
                    kept.position = entity.position
            session.commit()

    @staticmethod
    def _next_code(session, workspace_id: str) -> str:
        count = session.scalar(
            select(func.count()).select_from(TaskModel).where(TaskModel.workspace_id == workspace_id)
        )
        return f"{TASK_CODE_PREFIX}-{(count or 0) + 1}"

    @staticmethod
    def _next_position(session, data: dict[str, Any]) -> int:
        max_position = session.scalar(
            select(func.max(StatusModel.position)).where(
                StatusModel.workspace_id == data["workspace_id"],
                StatusModel.type == data.get("type", StatusScope.PROJECT.value),
                StatusModel.project_id == data.get("project_id"),
                StatusModel.space_id == data.get("space_id"),
                StatusModel.sprint_id == data.get("sprint_id"),
            )
        )
        return 0 if max_position is None else max_position + 1
