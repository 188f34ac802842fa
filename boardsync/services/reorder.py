from __future__ import annotations

import logging
from dataclasses import replace

from boardsync.domain.drag import (
    IDLE,
    ColumnTarget,
    DragSession,
    DropTarget,
    TaskTarget,
    array_move,
    index_of,
    reindex,
)
from boardsync.domain.entities import StatusEntity, TaskEntity
from boardsync.domain.enums import ActivityType, EntityType, SyncStatus

from .activity import ActivityEmitter
from .gateway import PersistenceGateway
from .notifier import Notifier
from .refresh import BoardRefresher
from .sequencing import WriteSequencer, status_order_key, task_key
from .store import BoardStore

logger = logging.getLogger(__name__)


class ReorderEngine:
    def __init__(
        self,
        store: BoardStore,
        gateway: PersistenceGateway,
        refresher: BoardRefresher,
        activity: ActivityEmitter,
        notifier: Notifier,
        sequencer: WriteSequencer | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._refresher = refresher
        self._activity = activity
        self._notifier = notifier
        self._sequencer = sequencer or WriteSequencer()

    def begin_drag(self, active_id: str) -> DragSession:
        snapshot = self._store.snapshot
        task = next((t for t in self._store.visible_tasks() if t.id == active_id), None)
        if task is not None:
            if task.is_subtask:
                logger.debug("Subtask %s is not draggable", active_id)
                return snapshot.drag
            session = DragSession(active_task=task)
        else:
            status = snapshot.status(active_id)
            if status is None:
                logger.debug("Drag started on unknown id %s", active_id)
                return snapshot.drag
            session = DragSession(active_status=status)
        self._store.merge(drag=session)
        return session

    def cancel_drag(self) -> None:
        self._store.merge(drag=IDLE)

    async def drop(self, target: DropTarget) -> bool:
        """Finish the current drag. Returns True when a write was issued."""
        session = self._store.snapshot.drag
        # Cleared before any write so a new drag can start while this one lands.
        self._store.merge(drag=IDLE)
        if not target:
            logger.debug("Drop without a target, ignoring")
            return False
        if session.active_status is not None:
            return await self._reorder_status(session.active_status, target)
        if session.active_task is not None:
            return await self._move_task(session.active_task.id, target)
        return False

    async def _reorder_status(self, active: StatusEntity, target: DropTarget) -> bool:
        if not isinstance(target, ColumnTarget):
            return False

        statuses = list(self._store.snapshot.statuses)
        old_index = index_of(statuses, active.id)
        new_index = index_of(statuses, target.status_id)
        if old_index == -1 or new_index == -1 or old_index == new_index:
            logger.debug("Status drop is a no-op (%s -> %s)", old_index, new_index)
            return False

        ordered = reindex(array_move(statuses, old_index, new_index))
        self._store.merge(statuses=ordered)

        key = status_order_key(active.workspace_id)
        token = self._sequencer.issue(key)
        result = await self._gateway.bulk_upsert_statuses(ordered)
        if not self._sequencer.land(key, token):
            logger.info("Discarding stale status reorder result %s", token)
            return True

        if not result.ok:
            logger.error("Error updating status positions: %s", result.error)
            self._notifier.error("Could not reorder statuses", result.error or "")
            await self._refresher.refresh_statuses()
            return True

        self._activity.emit(
            type=ActivityType.REORDERED,
            entity_type=EntityType.STATUS,
            entity_id=active.id,
            entity_name=active.name,
            description=f'Reordered status "{active.name}"',
            metadata={
                "oldIndex": old_index,
                "newIndex": new_index,
                "oldStatusName": active.name,
                "newStatusName": ordered[new_index].name,
            },
        )
        return True

    def _resolve_status_id(self, target: DropTarget) -> str | None:
        snapshot = self._store.snapshot
        if isinstance(target, ColumnTarget):
            return target.status_id if snapshot.status(target.status_id) else None
        if isinstance(target, TaskTarget):
            over = snapshot.task(target.task_id)
            return over.status_id if over else None
        return None

    async def _move_task(self, task_id: str, target: DropTarget) -> bool:
        snapshot = self._store.snapshot
        task = snapshot.task(task_id)
        if task is None or task.is_subtask:
            return False

        new_status_id = self._resolve_status_id(target)
        if not new_status_id or new_status_id == task.status_id:
            logger.debug("Task drop is a no-op for %s", task_id)
            return False

        old_status = snapshot.status(task.status_id)
        new_status = snapshot.status(new_status_id)

        fields: dict = {"status_id": new_status_id}
        if task.is_mirrored:
            fields.update(pending_sync=True, sync_status=SyncStatus.PENDING.value)

        self._store.merge(tasks=[_patched(t, task_id, fields) for t in snapshot.tasks])

        key = task_key(task_id)
        token = self._sequencer.issue(key)
        result = await self._gateway.update_task(task_id, fields)
        if not self._sequencer.land(key, token):
            logger.info("Discarding stale status change for task %s", task_id)
            return True

        if not result.ok:
            logger.error("Error updating task status: %s", result.error)
            self._notifier.error("Could not move task", result.error or "")
            await self._refresher.refresh_tasks()
            return True

        old_name = old_status.name if old_status else "Unknown"
        new_name = new_status.name if new_status else "Unknown"
        self._activity.emit(
            type=ActivityType.UPDATED,
            entity_type=EntityType.TASK,
            entity_id=task.id,
            entity_name=task.name,
            description=f'Updated task "{task.name}" status from "{old_name}" to "{new_name}"',
            metadata={
                "field": "status",
                "oldStatusId": task.status_id,
                "newStatusId": new_status_id,
                "oldStatusName": old_status.name if old_status else None,
                "newStatusName": new_status.name if new_status else None,
            },
        )
        return True


def _patched(task: TaskEntity, task_id: str, fields: dict) -> TaskEntity:
    return replace(task, **fields) if task.id == task_id else task
