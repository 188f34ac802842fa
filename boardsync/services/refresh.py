from __future__ import annotations

import asyncio
import logging

from boardsync.domain.entities import BoardScope

from .gateway import PersistenceGateway
from .sequencing import WriteSequencer
from .store import BoardStore, SubtaskCache

logger = logging.getLogger(__name__)

TASKS = "fetch:tasks"
STATUSES = "fetch:statuses"
SUBTASKS = "fetch:subtasks"


class BoardRefresher:
    """Rebuilds store collections from a fresh fetch.

    A failed fetch is logged and the store keeps its last-known state. When
    two fetches of the same collection overlap, only the most recently
    issued one may replace it.
    """

    def __init__(
        self,
        store: BoardStore,
        gateway: PersistenceGateway,
        scope: BoardScope,
        sequencer: WriteSequencer | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self.scope = scope
        self._sequencer = sequencer or WriteSequencer()

    async def refresh_tasks(self) -> bool:
        token = self._sequencer.issue(TASKS)
        self._store.merge(loading=True)
        try:
            result = await self._gateway.fetch_tasks(self.scope)
            if not result.ok:
                logger.error("Error refreshing tasks for %s: %s", self.scope.feed_key, result.error)
                return False
            if not self._sequencer.land(TASKS, token):
                logger.debug("Discarding stale task fetch %s", token)
                return False
            self._store.merge(tasks=result.data or [])
            return True
        finally:
            if self._sequencer.is_latest(TASKS, token):
                self._store.merge(loading=False)

    async def refresh_statuses(self) -> bool:
        token = self._sequencer.issue(STATUSES)
        result = await self._gateway.fetch_statuses(self.scope)
        if not result.ok:
            logger.error("Error refreshing statuses for %s: %s", self.scope.workspace_id, result.error)
            return False
        if not self._sequencer.land(STATUSES, token):
            logger.debug("Discarding stale status fetch %s", token)
            return False
        self._store.merge(statuses=result.data or [])
        return True

    async def refresh_subtasks(self) -> bool:
        token = self._sequencer.issue(SUBTASKS)
        result = await self._gateway.fetch_subtasks(self.scope)
        if not result.ok:
            logger.error("Error loading subtasks for %s: %s", self.scope.feed_key, result.error)
            return False
        if not self._sequencer.land(SUBTASKS, token):
            logger.debug("Discarding stale subtask fetch %s", token)
            return False
        self._store.merge(subtasks=SubtaskCache.from_tasks(result.data or []))
        return True

    async def refresh_all(self) -> bool:
        results = await asyncio.gather(
            self.refresh_tasks(),
            self.refresh_statuses(),
            self.refresh_subtasks(),
        )
        return all(results)
