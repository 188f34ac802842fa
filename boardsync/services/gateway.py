from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Protocol, Sequence, TypeVar

from boardsync.domain.entities import (
    ActivityEntry,
    BoardScope,
    ChangeEvent,
    StatusEntity,
    TaskEntity,
)
from boardsync.domain.enums import EntityClass

T = TypeVar("T")


@dataclass(frozen=True)
class GatewayResult(Generic[T]):
    ok: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, data: T | None = None) -> "GatewayResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "GatewayResult[T]":
        return cls(ok=False, error=error)


class PersistenceGateway(Protocol):
    """Request/response access to the backing store.

    Failures come back as ``GatewayResult.failure``; implementations never
    raise across this boundary.
    """

    async def fetch_tasks(self, scope: BoardScope) -> GatewayResult[list[TaskEntity]]: ...

    async def fetch_statuses(self, scope: BoardScope) -> GatewayResult[list[StatusEntity]]: ...

    async def fetch_subtasks(self, scope: BoardScope) -> GatewayResult[list[TaskEntity]]: ...

    async def create_task(self, data: dict[str, Any]) -> GatewayResult[TaskEntity]: ...

    async def update_task(self, task_id: str, fields: dict[str, Any]) -> GatewayResult[TaskEntity]: ...

    async def bulk_upsert_statuses(self, statuses: Sequence[StatusEntity]) -> GatewayResult[None]: ...

    async def delete_task(self, task_id: str) -> GatewayResult[None]: ...

    async def set_task_tags(self, task_id: str, tag_ids: frozenset[str], fields: dict[str, Any]) -> GatewayResult[None]: ...

    async def create_status(self, data: dict[str, Any]) -> GatewayResult[StatusEntity]: ...

    async def update_status(self, status_id: str, fields: dict[str, Any]) -> GatewayResult[StatusEntity]: ...

    async def delete_status(
        self,
        status_id: str,
        fallback_status_id: str | None,
        remaining: Sequence[StatusEntity],
    ) -> GatewayResult[None]: ...


class ActivitySink(Protocol):
    async def record(self, entry: ActivityEntry) -> None: ...


EventCallback = Callable[[ChangeEvent], None]


class ChangeSubscription(Protocol):
    def subscribe(
        self,
        scope: BoardScope,
        entity_class: EntityClass,
        on_event: EventCallback,
    ) -> Any: ...

    def unsubscribe(self, handle: Any) -> None: ...
