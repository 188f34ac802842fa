from __future__ import annotations

import logging

from boardsync.domain.entities import BoardScope
from boardsync.domain.filters import FilterCriteria

from .activity import ActivityEmitter
from .gateway import ActivitySink, ChangeSubscription, PersistenceGateway
from .notifier import LogNotifier, Notifier
from .reconciler import ChangeFeedReconciler
from .refresh import BoardRefresher
from .reorder import ReorderEngine
from .sequencing import WriteSequencer
from .store import BoardStore
from .task_service import TaskService

logger = logging.getLogger(__name__)


class BoardSession:
    """One open board: store, engine, reconciler and edit handlers wired
    to the same gateway, feed and sequencer."""

    def __init__(
        self,
        scope: BoardScope,
        gateway: PersistenceGateway,
        feed: ChangeSubscription,
        sink: ActivitySink,
        actor_id: str | None,
        notifier: Notifier | None = None,
        store: BoardStore | None = None,
    ) -> None:
        self.scope = scope
        self.store = store or BoardStore()
        self.notifier = notifier or LogNotifier()
        sequencer = WriteSequencer()
        self.refresher = BoardRefresher(self.store, gateway, scope, sequencer)
        self.activity = ActivityEmitter(sink, scope, actor_id)
        self.engine = ReorderEngine(
            self.store, gateway, self.refresher, self.activity, self.notifier, sequencer
        )
        self.tasks = TaskService(
            self.store, gateway, self.refresher, self.activity, self.notifier, scope, sequencer
        )
        self.reconciler = ChangeFeedReconciler(feed, self.refresher)

    async def open(self) -> bool:
        self.reconciler.attach(self.scope)
        loaded = await self.refresher.refresh_all()
        if not loaded:
            logger.error("Board %s opened with stale data", self.scope.feed_key)
        return loaded

    def set_filters(self, criteria: FilterCriteria) -> None:
        self.store.merge(filters=criteria)

    async def close(self) -> None:
        self.reconciler.detach()
        await self.reconciler.wait_idle()
        await self.activity.drain()
