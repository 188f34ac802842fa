from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest
from conftest import SCOPE, FakeGateway, make_status, make_task, settle

from boardsync.domain.enums import ActivityType, EntityType, Priority, StatusColor


async def _opened(make_session, gateway, **kwargs):
    session = make_session(gateway, **kwargs)
    await session.refresher.refresh_all()
    return session


@pytest.mark.asyncio
async def test_rename_task_updates_store_and_records_names(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)

    assert await session.tasks.rename_task("t2", "  Review draft  ")
    await settle(session)

    assert session.store.snapshot.task("t2").name == "Review draft"
    assert gateway.writes() == [("update_task", "t2", {"name": "Review draft"})]
    (entry,) = sink.entries
    assert entry.entity_name == "Review draft"
    assert entry.metadata["oldName"] == "Review brief"
    assert entry.metadata["newName"] == "Review draft"


@pytest.mark.asyncio
async def test_blank_or_unchanged_name_is_a_noop(make_session, gateway) -> None:
    session = await _opened(make_session, gateway)

    assert not await session.tasks.rename_task("t2", "   ")
    assert not await session.tasks.rename_task("t2", "Review brief")
    assert not await session.tasks.rename_task("missing", "Anything")
    assert gateway.writes() == []


@pytest.mark.asyncio
async def test_subtask_edit_patches_cache_and_names_parent(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)

    assert await session.tasks.rename_task("t3", "Collect all notes")
    await settle(session)

    assert session.store.snapshot.subtasks.for_parent("t1")[0].name == "Collect all notes"
    (entry,) = sink.entries
    assert entry.entity_type == EntityType.SUBTASK
    assert entry.parent_task_id == "t1"


@pytest.mark.asyncio
async def test_failed_assignment_rolls_back(make_session, gateway, sink, notifier) -> None:
    session = await _opened(make_session, gateway)
    gateway.failing.add("update_task")

    assert not await session.tasks.assign_task("t1", "user-9", "Nina")
    await settle(session)

    assert session.store.snapshot.task("t1").assignee_id == "user-2"
    assert [title for title, _ in notifier.errors] == ["Could not assign task"]
    assert sink.entries == []


@pytest.mark.asyncio
async def test_unassign_description(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)

    assert await session.tasks.assign_task("t1", None)
    await settle(session)

    assert sink.entries[0].description == 'Unassigned task "Write brief"'
    assert gateway.tasks["t1"].assignee_id is None


@pytest.mark.asyncio
async def test_external_tracker_edits_carry_sync_flags(make_session, gateway) -> None:
    session = await _opened(make_session, gateway, scope=replace(SCOPE, external_tracker=True))

    assert await session.tasks.update_priority("t2", "medium")

    assert gateway.writes() == [
        ("update_task", "t2", {"priority": Priority.MEDIUM, "pending_sync": True, "sync_status": "pending"})
    ]
    assert session.store.snapshot.task("t2").pending_sync
    await settle(session)


@pytest.mark.asyncio
async def test_dates_and_estimate(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)

    assert await session.tasks.update_dates("t2", date(2026, 3, 1), date(2026, 3, 9))
    assert not await session.tasks.update_dates("t2", date(2026, 3, 1), date(2026, 3, 9))
    assert await session.tasks.update_time_estimate("t2", " 3h ")
    assert not await session.tasks.update_time_estimate("t2", "3h")
    await settle(session)

    task = session.store.snapshot.task("t2")
    assert (task.due_date, task.time_estimate) == (date(2026, 3, 9), "3h")
    assert sink.entries[0].metadata["newDueDate"] == "2026-03-09"
    assert sink.entries[1].metadata["newEstimate"] == "3h"


@pytest.mark.asyncio
async def test_set_tags_records_added_and_removed(make_session, sink) -> None:
    gateway = FakeGateway([make_task("t1", "Tagged", "todo", tag_ids=frozenset({"bug", "ui"}))], [make_status("todo", "Todo", 0)])
    session = await _opened(make_session, gateway)

    assert await session.tasks.set_tags("t1", {"ui", "docs"})
    await settle(session)

    assert session.store.snapshot.task("t1").tag_ids == frozenset({"ui", "docs"})
    assert sink.entries[0].metadata["addedTagIds"] == ["docs"]
    assert sink.entries[0].metadata["removedTagIds"] == ["bug"]


@pytest.mark.asyncio
async def test_delete_task_removes_subtasks(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)

    assert await session.tasks.delete_task("t1")
    await settle(session)

    snapshot = session.store.snapshot
    assert [t.id for t in snapshot.tasks] == ["t2"]
    assert snapshot.subtasks.all == ()
    assert sink.entries[0].type == ActivityType.DELETED


@pytest.mark.asyncio
async def test_failed_delete_restores_task(make_session, gateway, notifier) -> None:
    session = await _opened(make_session, gateway)
    gateway.failing.add("delete_task")

    assert not await session.tasks.delete_task("t1")

    assert session.store.snapshot.task("t1") is not None
    assert [t.id for t in session.store.snapshot.subtasks.for_parent("t1")] == ["t3"]
    assert len(notifier.errors) == 1


@pytest.mark.asyncio
async def test_task_created_refreshes_and_records(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)
    created = make_task("t4", "Plan launch", "doing")
    gateway.tasks[created.id] = created

    await session.tasks.task_created(created)
    await settle(session)

    assert session.store.snapshot.task("t4") == created
    assert sink.entries[0].type == ActivityType.CREATED
    assert sink.entries[0].entity_type == EntityType.TASK


@pytest.mark.asyncio
async def test_rename_status_and_settings(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)

    assert await session.tasks.rename_status("doing", "In progress")
    assert await session.tasks.update_status_settings("done", color=StatusColor.GREEN)
    assert not await session.tasks.update_status_settings("done", color=StatusColor.GREEN)
    await settle(session)

    assert session.store.snapshot.status("doing").name == "In progress"
    renamed, recolored = sink.entries
    assert renamed.description == 'Renamed status "Doing" to "In progress"'
    assert recolored.metadata == {
        "oldColor": "gray",
        "newColor": "green",
        "projectName": "Apollo",
        "spaceName": "Engineering",
    }


@pytest.mark.asyncio
async def test_delete_status_moves_tasks_to_first_remaining_column(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)

    assert await session.tasks.delete_status("todo")
    await settle(session)

    snapshot = session.store.snapshot
    assert [(s.id, s.position) for s in snapshot.statuses] == [("doing", 0), ("done", 1)]
    assert snapshot.task("t1").status_id == "doing"
    name, status_id, fallback, remaining = gateway.writes()[0]
    assert (name, status_id, fallback) == ("delete_status", "todo", "doing")
    assert [s.position for s in remaining] == [0, 1]
    assert gateway.tasks["t1"].status_id == "doing"
    assert sink.entries[0].metadata["reassignedTaskCount"] == 2


@pytest.mark.asyncio
async def test_last_column_with_tasks_cannot_be_deleted(make_session, notifier) -> None:
    gateway = FakeGateway([make_task("t1", "Only", "todo")], [make_status("todo", "Todo", 0)])
    session = await _opened(make_session, gateway)

    assert not await session.tasks.delete_status("todo")

    assert gateway.writes() == []
    assert session.store.snapshot.status("todo") is not None
    assert len(notifier.errors) == 1


@pytest.mark.asyncio
async def test_last_empty_column_can_be_deleted(make_session) -> None:
    gateway = FakeGateway([], [make_status("todo", "Todo", 0)])
    session = await _opened(make_session, gateway)

    assert await session.tasks.delete_status("todo")
    await settle(session)

    assert gateway.writes() == [("delete_status", "todo", None, [])]
    assert session.store.snapshot.statuses == ()


@pytest.mark.asyncio
async def test_create_task_loads_board_and_records(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway, scope=replace(SCOPE, external_tracker=True))

    created = await session.tasks.create_task(" Plan launch ", "doing", priority=Priority.HIGH)
    await settle(session)

    assert created.name == "Plan launch"
    assert session.store.snapshot.task(created.id) == created
    name, data = gateway.writes()[0]
    assert name == "create_task"
    assert data["project_id"] == SCOPE.project_id
    assert data["pending_sync"] is True
    assert sink.entries[0].type == ActivityType.CREATED


@pytest.mark.asyncio
async def test_create_subtask_lands_in_cache(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)

    created = await session.tasks.create_task("Outline", "todo", parent_task_id="t1")
    await settle(session)

    assert created.id in {t.id for t in session.store.snapshot.subtasks.for_parent("t1")}
    assert sink.entries[0].entity_type == EntityType.SUBTASK


@pytest.mark.asyncio
async def test_create_task_rejects_blank_name_and_unknown_status(make_session, gateway) -> None:
    session = await _opened(make_session, gateway)

    assert await session.tasks.create_task("  ", "todo") is None
    assert await session.tasks.create_task("Valid", "missing") is None
    assert gateway.writes() == []


@pytest.mark.asyncio
async def test_failed_create_notifies(make_session, gateway, notifier, sink) -> None:
    session = await _opened(make_session, gateway)
    gateway.failing.add("create_task")

    assert await session.tasks.create_task("Plan launch", "todo") is None
    await settle(session)

    assert [title for title, _ in notifier.errors] == ["Could not create task"]
    assert sink.entries == []


@pytest.mark.asyncio
async def test_create_status_appends_column(make_session, gateway, sink) -> None:
    session = await _opened(make_session, gateway)

    status = await session.tasks.create_status("Review", StatusColor.PURPLE)
    await settle(session)

    assert [s.id for s in session.store.snapshot.statuses][-1] == status.id
    _, data = gateway.writes()[0]
    assert data["type"] == "project"
    assert data["color"] == StatusColor.PURPLE
    assert sink.entries[0].entity_type == EntityType.STATUS
    assert sink.entries[0].metadata["position"] == 3
