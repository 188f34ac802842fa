"""In-process change feed.

Subscribers register per (scope, entity class). Publishing never calls a
subscriber directly: delivery is scheduled on the loop the subscriber was
registered from, so commits on gateway worker threads are safe to publish.
Events carry no authoritative payload; subscribers refetch.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from dataclasses import dataclass

from sqlalchemy import event
from sqlalchemy.orm import Session

from boardsync.domain.entities import BoardScope, ChangeEvent
from boardsync.domain.enums import ChangeKind, EntityClass
from boardsync.services.gateway import EventCallback

from .models import StatusModel, TaskModel

logger = logging.getLogger(__name__)

PENDING_KEY = "boardsync_changes"


@dataclass(frozen=True)
class Subscription:
    id: int
    scope: BoardScope
    entity_class: EntityClass
    callback: EventCallback
    loop: asyncio.AbstractEventLoop

    def matches(self, change: ChangeEvent) -> bool:
        if change.entity_class != self.entity_class:
            return False
        if self.entity_class == EntityClass.STATUSES:
            return change.workspace_id == self.scope.workspace_id
        if self.scope.is_sprint:
            return change.sprint_id == self.scope.sprint_id
        return change.project_id == self.scope.project_id


class ChangeFeed:
    def __init__(self) -> None:
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, scope: BoardScope, entity_class: EntityClass, on_event: EventCallback) -> int:
        subscription = Subscription(
            id=next(self._ids),
            scope=scope,
            entity_class=EntityClass(entity_class),
            callback=on_event,
            loop=asyncio.get_running_loop(),
        )
        with self._lock:
            self._subscriptions[subscription.id] = subscription
        return subscription.id

    def unsubscribe(self, handle: int) -> None:
        with self._lock:
            self._subscriptions.pop(handle, None)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, change: ChangeEvent) -> int:
        with self._lock:
            targets = [sub for sub in self._subscriptions.values() if sub.matches(change)]
        delivered = 0
        for subscription in targets:
            if subscription.loop.is_closed():
                continue
            subscription.loop.call_soon_threadsafe(self._deliver, subscription.id, change)
            delivered += 1
        return delivered

    def _deliver(self, subscription_id: int, change: ChangeEvent) -> None:
        with self._lock:
            subscription = self._subscriptions.get(subscription_id)
        # Unsubscribed between publish and delivery.
        if subscription is None:
            return
        try:
            subscription.callback(change)
        except Exception:  # noqa: BLE001
            logger.exception("Change feed subscriber %s failed", subscription_id)


def _change_for(instance, kind: ChangeKind) -> ChangeEvent | None:
    if isinstance(instance, TaskModel):
        return ChangeEvent(
            entity_class=EntityClass.TASKS,
            kind=kind,
            entity_id=instance.id,
            workspace_id=instance.workspace_id,
            project_id=instance.project_id,
            sprint_id=instance.sprint_id,
        )
    if isinstance(instance, StatusModel):
        return ChangeEvent(
            entity_class=EntityClass.STATUSES,
            kind=kind,
            entity_id=instance.id,
            workspace_id=instance.workspace_id,
            project_id=instance.project_id,
            sprint_id=instance.sprint_id,
        )
    return None


def install_change_publisher(session_factory, feed: ChangeFeed) -> None:
    """Publish committed task and status writes made through ``session_factory``."""

    def collect(session: Session, flush_context) -> None:
        pending = session.info.setdefault(PENDING_KEY, [])
        for kind, instances in (
            (ChangeKind.INSERT, session.new),
            (ChangeKind.UPDATE, session.dirty),
            (ChangeKind.DELETE, session.deleted),
        ):
            for instance in instances:
                change = _change_for(instance, kind)
                if change is not None:
                    pending.append(change)

    def publish(session: Session) -> None:
        for change in session.info.pop(PENDING_KEY, []):
            feed.publish(change)

    def discard(session: Session) -> None:
        session.info.pop(PENDING_KEY, None)

    event.listen(session_factory, "after_flush", collect)
    event.listen(session_factory, "after_commit", publish)
    event.listen(session_factory, "after_rollback", discard)
