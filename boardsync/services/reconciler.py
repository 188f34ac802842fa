from __future__ import annotations

import asyncio
import logging
from typing import Any

from boardsync.domain.entities import BoardScope, ChangeEvent
from boardsync.domain.enums import EntityClass

from .gateway import ChangeSubscription
from .refresh import BoardRefresher

logger = logging.getLogger(__name__)


class ChangeFeedReconciler:
    """Keeps the store converged with the backing store.

    Every change event in scope, whatever its origin, triggers independent
    refetches of tasks, statuses and subtasks that fully replace the
    corresponding store collections.
    """

    def __init__(self, feed: ChangeSubscription, refresher: BoardRefresher) -> None:
        self._feed = feed
        self._refresher = refresher
        self._handles: list[Any] = []
        self._scope: BoardScope | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def scope(self) -> BoardScope | None:
        return self._scope

    @property
    def attached(self) -> bool:
        return bool(self._handles)

    def attach(self, scope: BoardScope) -> None:
        if not scope.workspace_id or not scope.feed_key:
            self.detach()
            return
        if scope == self._scope and self._handles:
            return

        self.detach()
        self._scope = scope
        self._refresher.scope = scope
        self._handles = [
            self._feed.subscribe(scope, EntityClass.TASKS, self._on_event),
            self._feed.subscribe(scope, EntityClass.STATUSES, self._on_event),
        ]
        logger.info("Subscribed to changes for %s/%s", scope.workspace_id, scope.feed_key)

    def detach(self) -> None:
        handles, self._handles = self._handles, []
        for handle in handles:
            self._feed.unsubscribe(handle)
        if handles and self._scope is not None:
            logger.info("Unsubscribed from changes for %s/%s", self._scope.workspace_id, self._scope.feed_key)
        self._scope = None

    def _on_event(self, event: ChangeEvent) -> None:
        logger.debug("Change event %s %s %s", event.entity_class, event.kind, event.entity_id)
        loop = asyncio.get_running_loop()
        for refresh in (
            self._refresher.refresh_tasks,
            self._refresher.refresh_statuses,
            self._refresher.refresh_subtasks,
        ):
            task = loop.create_task(self._run(refresh))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def _run(self, refresh) -> None:
        try:
            await refresh()
        except Exception:  # noqa: BLE001
            logger.exception("Reconciliation refresh failed")

    async def wait_idle(self) -> None:
        while self._inflight:
            await asyncio.gather(*list(self._inflight))
