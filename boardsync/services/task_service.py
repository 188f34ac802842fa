from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any

from boardsync.domain.drag import reindex
from boardsync.domain.entities import BoardScope, StatusEntity, TaskEntity
from boardsync.domain.enums import ActivityType, EntityType, Priority, StatusColor, StatusScope, SyncStatus

from .activity import ActivityEmitter
from .gateway import PersistenceGateway
from .notifier import Notifier
from .refresh import BoardRefresher
from .sequencing import WriteSequencer, status_key, task_key
from .store import BoardStore, SubtaskCache

logger = logging.getLogger(__name__)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


class TaskService:
    """Field-edit handlers for tasks and statuses on an open board."""

    def __init__(
        self,
        store: BoardStore,
        gateway: PersistenceGateway,
        refresher: BoardRefresher,
        activity: ActivityEmitter,
        notifier: Notifier,
        scope: BoardScope,
        sequencer: WriteSequencer | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._refresher = refresher
        self._activity = activity
        self._notifier = notifier
        self._scope = scope
        self._sequencer = sequencer or WriteSequencer()

    def find_task(self, task_id: str) -> TaskEntity | None:
        snapshot = self._store.snapshot
        return snapshot.task(task_id) or next(
            (task for task in snapshot.subtasks.all if task.id == task_id), None
        )

    async def create_task(
        self,
        name: str,
        status_id: str,
        parent_task_id: str | None = None,
        **fields: Any,
    ) -> TaskEntity | None:
        name = name.strip()
        if not name or self._store.snapshot.status(status_id) is None:
            return None
        data = {
            **fields,
            "name": name,
            "status_id": status_id,
            "parent_task_id": parent_task_id,
            "workspace_id": self._scope.workspace_id,
            "space_id": self._scope.space_id,
            "project_id": self._scope.project_id,
            "sprint_id": self._scope.sprint_id,
        }
        if self._scope.external_tracker:
            data.update(pending_sync=True, sync_status=SyncStatus.PENDING.value)

        result = await self._gateway.create_task(data)
        if not result.ok:
            logger.error("Error creating task: %s", result.error)
            self._notifier.error("Could not create task", result.error or "")
            return None
        await self.task_created(result.data)
        return result.data

    async def create_status(self, name: str, color: StatusColor = StatusColor.GRAY) -> StatusEntity | None:
        name = name.strip()
        if not name:
            return None
        scope = StatusScope.SPRINT if self._scope.is_sprint else StatusScope.PROJECT
        result = await self._gateway.create_status(
            {
                "name": name,
                "color": color,
                "type": scope,
                "workspace_id": self._scope.workspace_id,
                "project_id": None if self._scope.is_sprint else self._scope.project_id,
                "sprint_id": self._scope.sprint_id,
            }
        )
        if not result.ok:
            logger.error("Error creating status: %s", result.error)
            self._notifier.error("Could not create status", result.error or "")
            return None

        status = result.data
        await self._refresher.refresh_statuses()
        self._activity.emit(
            type=ActivityType.CREATED,
            entity_type=EntityType.STATUS,
            entity_id=status.id,
            entity_name=status.name,
            description=f'Created status "{status.name}"',
            metadata={"statusName": status.name, "position": status.position},
        )
        return status

    async def task_created(self, task: TaskEntity) -> None:
        await self._refresher.refresh_tasks()
        await self._refresher.refresh_subtasks()
        entity_type = EntityType.SUBTASK if task.is_subtask else EntityType.TASK
        self._activity.emit(
            type=ActivityType.CREATED,
            entity_type=entity_type,
            entity_id=task.id,
            entity_name=task.name,
            description=f'Created {entity_type.value} "{task.name}"',
            metadata={"taskName": task.name, "statusId": task.status_id},
            parent_task_id=task.parent_task_id,
        )

    async def rename_task(self, task_id: str, new_name: str) -> bool:
        task = self.find_task(task_id)
        new_name = new_name.strip()
        if task is None or not new_name or new_name == task.name:
            return False
        return await self._update_task(
            task,
            {"name": new_name},
            failure_title="Could not rename task",
            description=f'Renamed task from "{task.name}" to "{new_name}"',
            metadata={"field": "name", "oldName": task.name, "newName": new_name},
            entity_name=new_name,
        )

    async def assign_task(self, task_id: str, assignee_id: str | None, assignee_name: str | None = None) -> bool:
        task = self.find_task(task_id)
        if task is None or task.assignee_id == assignee_id:
            return False
        if assignee_id:
            description = f'Assigned task "{task.name}" to "{assignee_name or "Unknown"}"'
        else:
            description = f'Unassigned task "{task.name}"'
        return await self._update_task(
            task,
            {"assignee_id": assignee_id},
            failure_title="Could not assign task",
            description=description,
            metadata={
                "field": "assignee",
                "oldAssigneeId": task.assignee_id,
                "newAssigneeId": assignee_id,
                "newAssigneeName": assignee_name,
            },
        )

    async def update_priority(self, task_id: str, priority: Priority | str | None) -> bool:
        task = self.find_task(task_id)
        new_priority = Priority(priority) if priority else Priority.NONE
        if task is None or task.priority == new_priority:
            return False
        return await self._update_task(
            task,
            {"priority": new_priority},
            failure_title="Could not update priority",
            description=f'Updated task "{task.name}" priority to {new_priority.value}',
            metadata={"field": "priority", "oldPriority": task.priority.value, "newPriority": new_priority.value},
        )

    async def update_dates(self, task_id: str, start_date: date | None, due_date: date | None) -> bool:
        task = self.find_task(task_id)
        if task is None or (task.start_date, task.due_date) == (start_date, due_date):
            return False
        return await self._update_task(
            task,
            {"start_date": start_date, "due_date": due_date},
            failure_title="Could not update dates",
            description=f'Updated task "{task.name}" dates',
            metadata={
                "field": "dates",
                "oldStartDate": _iso(task.start_date),
                "newStartDate": _iso(start_date),
                "oldDueDate": _iso(task.due_date),
                "newDueDate": _iso(due_date),
            },
        )

    async def update_time_estimate(self, task_id: str, estimate: str | None) -> bool:
        task = self.find_task(task_id)
        estimate = (estimate or "").strip() or None
        if task is None or task.time_estimate == estimate:
            return False
        return await self._update_task(
            task,
            {"time_estimate": estimate},
            failure_title="Could not update time estimate",
            description=f'Updated task "{task.name}" time estimate',
            metadata={"field": "time_estimate", "oldEstimate": task.time_estimate, "newEstimate": estimate},
        )

    async def set_tags(self, task_id: str, tag_ids: frozenset[str] | set[str]) -> bool:
        task = self.find_task(task_id)
        tag_ids = frozenset(tag_ids)
        if task is None or task.tag_ids == tag_ids:
            return False

        sync_fields = self._sync_fields(task)
        self._patch_task(task.id, {"tag_ids": tag_ids, **sync_fields})
        key = task_key(task.id)
        token = self._sequencer.issue(key)
        result = await self._gateway.set_task_tags(task.id, tag_ids, sync_fields)
        if not self._sequencer.land(key, token):
            return True
        if not result.ok:
            await self._rollback_task(task, "Could not update tags", result.error)
            return False

        added = sorted(tag_ids - task.tag_ids)
        removed = sorted(task.tag_ids - tag_ids)
        self._activity.emit(
            type=ActivityType.UPDATED,
            entity_type=self._entity_type(task),
            entity_id=task.id,
            entity_name=task.name,
            description=f'Updated task "{task.name}" tags',
            metadata={"field": "tags", "addedTagIds": added, "removedTagIds": removed},
            parent_task_id=task.parent_task_id,
        )
        return True

    async def delete_task(self, task_id: str) -> bool:
        task = self.find_task(task_id)
        if task is None:
            return False

        snapshot = self._store.snapshot
        doomed = {task.id} | {sub.id for sub in snapshot.subtasks.for_parent(task.id)}
        self._store.merge(
            tasks=[t for t in snapshot.tasks if t.id not in doomed],
            subtasks=SubtaskCache.from_tasks(t for t in snapshot.subtasks.all if t.id not in doomed),
        )

        result = await self._gateway.delete_task(task.id)
        if not result.ok:
            logger.error("Error deleting task %s: %s", task.id, result.error)
            self._notifier.error("Could not delete task", result.error or "")
            await self._refresher.refresh_tasks()
            await self._refresher.refresh_subtasks()
            return False

        entity_type = self._entity_type(task)
        self._activity.emit(
            type=ActivityType.DELETED,
            entity_type=entity_type,
            entity_id=task.id,
            entity_name=task.name,
            description=f'Deleted {entity_type.value} "{task.name}"',
            metadata={"taskName": task.name},
            parent_task_id=task.parent_task_id,
        )
        return True

    async def rename_status(self, status_id: str, new_name: str) -> bool:
        return await self.update_status_settings(status_id, name=new_name)

    async def update_status_settings(self, status_id: str, **changes: Any) -> bool:
        status = self._store.snapshot.status(status_id)
        if status is None:
            return False
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                return False
        changes = {key: value for key, value in changes.items() if getattr(status, key) != value}
        if not changes:
            return False

        updated = replace(status, **changes)
        self._store.merge(
            statuses=[updated if s.id == status_id else s for s in self._store.snapshot.statuses]
        )
        key = status_key(status_id)
        token = self._sequencer.issue(key)
        result = await self._gateway.update_status(status_id, changes)
        if not self._sequencer.land(key, token):
            return True
        if not result.ok:
            logger.error("Error updating status %s: %s", status_id, result.error)
            self._notifier.error("Could not update status", result.error or "")
            await self._refresher.refresh_statuses()
            return False

        metadata: dict[str, Any] = {}
        for field_name, value in changes.items():
            label = "Type" if field_name == "status_type" else field_name.capitalize()
            metadata[f"old{label}"] = _plain(getattr(status, field_name))
            metadata[f"new{label}"] = _plain(value)
        self._activity.emit(
            type=ActivityType.UPDATED,
            entity_type=EntityType.STATUS,
            entity_id=status_id,
            entity_name=updated.name,
            description=(
                f'Renamed status "{status.name}" to "{updated.name}"'
                if set(changes) == {"name"}
                else f'Updated status "{updated.name}" settings'
            ),
            metadata=metadata,
        )
        return True

    async def delete_status(self, status_id: str) -> bool:
        """Delete a column, moving its tasks to the first remaining column."""
        snapshot = self._store.snapshot
        status = snapshot.status(status_id)
        if status is None:
            return False

        remaining = reindex(s for s in snapshot.statuses if s.id != status_id)
        fallback = remaining[0] if remaining else None
        orphans = [t for t in snapshot.tasks if t.status_id == status_id]
        if fallback is None and orphans:
            self._notifier.error(
                "Could not delete status",
                f'"{status.name}" is the last column and still holds {len(orphans)} task(s)',
            )
            return False

        fallback_id = fallback.id if fallback else None
        self._store.merge(
            statuses=remaining,
            tasks=[
                replace(t, status_id=fallback_id) if t.status_id == status_id else t
                for t in snapshot.tasks
            ],
        )
        result = await self._gateway.delete_status(status_id, fallback_id, remaining)
        if not result.ok:
            logger.error("Error deleting status %s: %s", status_id, result.error)
            self._notifier.error("Could not delete status", result.error or "")
            await self._refresher.refresh_statuses()
            await self._refresher.refresh_tasks()
            return False

        self._activity.emit(
            type=ActivityType.DELETED,
            entity_type=EntityType.STATUS,
            entity_id=status_id,
            entity_name=status.name,
            description=f'Deleted status "{status.name}"',
            metadata={
                "statusName": status.name,
                "reassignedTo": fallback.name if fallback else None,
                "reassignedTaskCount": len(orphans),
            },
        )
        return True

    def _sync_fields(self, task: TaskEntity) -> dict[str, Any]:
        if self._scope.external_tracker or task.is_mirrored:
            return {"pending_sync": True, "sync_status": SyncStatus.PENDING.value}
        return {}

    @staticmethod
    def _entity_type(task: TaskEntity) -> EntityType:
        return EntityType.SUBTASK if task.is_subtask else EntityType.TASK

    def _patch_task(self, task_id: str, fields: dict[str, Any]) -> None:
        snapshot = self._store.snapshot
        changes: dict[str, Any] = {}
        if any(t.id == task_id for t in snapshot.tasks):
            changes["tasks"] = [replace(t, **fields) if t.id == task_id else t for t in snapshot.tasks]
        if any(t.id == task_id for t in snapshot.subtasks.all):
            changes["subtasks"] = SubtaskCache.from_tasks(
                replace(t, **fields) if t.id == task_id else t for t in snapshot.subtasks.all
            )
        self._store.merge(**changes)

    async def _rollback_task(self, task: TaskEntity, title: str, error: str | None) -> None:
        logger.error("%s %s: %s", title, task.id, error)
        self._notifier.error(title, error or "")
        await self._refresher.refresh_tasks()
        if task.is_subtask:
            await self._refresher.refresh_subtasks()

    async def _update_task(
        self,
        task: TaskEntity,
        fields: dict[str, Any],
        failure_title: str,
        description: str,
        metadata: dict[str, Any],
        entity_name: str | None = None,
    ) -> bool:
        fields = {**fields, **self._sync_fields(task)}
        self._patch_task(task.id, fields)

        key = task_key(task.id)
        token = self._sequencer.issue(key)
        result = await self._gateway.update_task(task.id, fields)
        if not self._sequencer.land(key, token):
            logger.info("Discarding stale update for task %s", task.id)
            return True
        if not result.ok:
            await self._rollback_task(task, failure_title, result.error)
            return False

        self._activity.emit(
            type=ActivityType.UPDATED,
            entity_type=self._entity_type(task),
            entity_id=task.id,
            entity_name=entity_name or task.name,
            description=description,
            metadata=metadata,
            parent_task_id=task.parent_task_id,
        )
        return True


def _plain(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value
