from __future__ import annotations

import pytest
from conftest import make_status, make_task

from boardsync.domain.drag import (
    IDLE,
    NO_TARGET,
    ColumnTarget,
    DragSession,
    TaskTarget,
    array_move,
    drag_payload,
    parse_drag_payload,
    reindex,
    resolve_drop_target,
)

STATUSES = [make_status("todo", "Todo", 0), make_status("done", "Done", 1)]
TASKS = [make_task("t1", "One", "todo"), make_task("status-ghost", "Odd id", "done")]


def test_status_id_resolves_to_column() -> None:
    assert resolve_drop_target("done", STATUSES, TASKS) == ColumnTarget("done")


def test_prefixed_drop_zone_resolves_to_column() -> None:
    assert resolve_drop_target("status-todo", STATUSES, TASKS) == ColumnTarget("todo")


def test_custom_prefix() -> None:
    assert resolve_drop_target("col:done", STATUSES, TASKS, prefix="col:") == ColumnTarget("done")


def test_prefix_for_unknown_status_falls_through_to_task() -> None:
    assert resolve_drop_target("status-ghost", STATUSES, TASKS) == TaskTarget("status-ghost")


def test_task_id_resolves_to_task_target() -> None:
    assert resolve_drop_target("t1", STATUSES, TASKS) == TaskTarget("t1")


@pytest.mark.parametrize("raw_id", [None, "", "nowhere", "status-nowhere"])
def test_unknown_ids_have_no_target(raw_id) -> None:
    target = resolve_drop_target(raw_id, STATUSES, TASKS)
    assert target is NO_TARGET
    assert not target


def test_drag_payload_parsing() -> None:
    assert parse_drag_payload(drag_payload("task", "t1")) == ("task", "t1")
    assert parse_drag_payload("status:todo") == ("status", "todo")
    assert parse_drag_payload("card:t1") is None
    assert parse_drag_payload("task:") is None
    assert parse_drag_payload("plain text") is None
    assert parse_drag_payload(None) is None


def test_array_move_returns_new_list() -> None:
    items = ["a", "b", "c", "d"]
    assert array_move(items, 3, 0) == ["d", "a", "b", "c"]
    assert array_move(items, 0, 2) == ["b", "c", "a", "d"]
    assert items == ["a", "b", "c", "d"]


def test_reindex_keeps_untouched_statuses() -> None:
    moved = array_move(STATUSES, 1, 0)
    ordered = reindex(moved)
    assert [(s.id, s.position) for s in ordered] == [("done", 0), ("todo", 1)]
    assert reindex(STATUSES)[0] is STATUSES[0]


def test_drag_session_holds_one_entity() -> None:
    assert IDLE.is_idle
    assert not DragSession(active_task=TASKS[0]).is_idle
    with pytest.raises(ValueError):
        DragSession(active_task=TASKS[0], active_status=STATUSES[0])
