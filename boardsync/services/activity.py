from __future__ import annotations

import asyncio
import logging
from typing import Any

from boardsync.domain.entities import ActivityEntry, BoardScope
from boardsync.domain.enums import ActivityType, EntityType

from .gateway import ActivitySink

logger = logging.getLogger(__name__)


class ActivityEmitter:
    """Writes audit records for confirmed mutations.

    Writes run as background tasks: a failing sink is logged and never
    reaches the mutation that triggered it.
    """

    def __init__(self, sink: ActivitySink, scope: BoardScope, actor_id: str | None) -> None:
        self._sink = sink
        self._scope = scope
        self._actor_id = actor_id
        self._pending: set[asyncio.Task] = set()

    def build(
        self,
        type: ActivityType,
        entity_type: EntityType,
        entity_id: str,
        entity_name: str,
        description: str,
        metadata: dict[str, Any] | None = None,
        parent_task_id: str | None = None,
    ) -> ActivityEntry | None:
        if not self._actor_id:
            return None
        return ActivityEntry(
            type=type,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            actor_id=self._actor_id,
            workspace_id=self._scope.workspace_id,
            space_id=self._scope.space_id,
            project_id=self._scope.project_id,
            parent_task_id=parent_task_id,
            description=description,
            metadata={
                **(metadata or {}),
                "projectName": self._scope.project_name,
                "spaceName": self._scope.space_name,
            },
        )

    def emit(self, *args, **kwargs) -> asyncio.Task | None:
        entry = self.build(*args, **kwargs)
        if entry is None:
            logger.debug("No actor, skipping activity for %s", kwargs.get("entity_id"))
            return None
        task = asyncio.get_running_loop().create_task(self._record(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _record(self, entry: ActivityEntry) -> None:
        try:
            await self._sink.record(entry)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to record activity %s for %s: %s", entry.type, entry.entity_id, exc)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending))
