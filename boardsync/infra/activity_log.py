from __future__ import annotations

import asyncio

from boardsync.domain.entities import ActivityEntry

from .db import SessionLocal
from .models import ActivityModel


class SqlActivitySink:
    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    async def record(self, entry: ActivityEntry) -> None:
        await asyncio.to_thread(self._insert, entry)

    def _insert(self, entry: ActivityEntry) -> None:
        with self._session_factory() as session:
            session.add(
                ActivityModel(
                    type=entry.type.value,
                    entity_type=entry.entity_type.value,
                    entity_id=entry.entity_id,
                    entity_name=entry.entity_name,
                    actor_id=entry.actor_id,
                    workspace_id=entry.workspace_id,
                    space_id=entry.space_id,
                    project_id=entry.project_id,
                    parent_task_id=entry.parent_task_id,
                    description=entry.description,
                    details=dict(entry.metadata),
                )
            )
            session.commit()
