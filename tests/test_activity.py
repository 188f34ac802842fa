from __future__ import annotations

import logging

import pytest
from conftest import ACTOR, SCOPE

from boardsync.domain.enums import ActivityType, EntityType
from boardsync.services.activity import ActivityEmitter


def _emit(emitter: ActivityEmitter):
    return emitter.emit(
        type=ActivityType.UPDATED,
        entity_type=EntityType.TASK,
        entity_id="t1",
        entity_name="Write brief",
        description='Updated task "Write brief"',
        metadata={"field": "name"},
    )


def test_entry_carries_scope_names(sink) -> None:
    entry = ActivityEmitter(sink, SCOPE, ACTOR).build(
        ActivityType.CREATED, EntityType.TASK, "t1", "Write brief", "Created task"
    )
    assert entry.actor_id == ACTOR
    assert entry.workspace_id == SCOPE.workspace_id
    assert entry.metadata == {"projectName": "Apollo", "spaceName": "Engineering"}


@pytest.mark.asyncio
async def test_emit_records_in_background(sink) -> None:
    emitter = ActivityEmitter(sink, SCOPE, ACTOR)

    assert _emit(emitter) is not None
    assert sink.entries == []
    await emitter.drain()

    assert sink.entries[0].metadata["field"] == "name"


@pytest.mark.asyncio
async def test_missing_actor_skips_the_write(sink) -> None:
    emitter = ActivityEmitter(sink, SCOPE, None)

    assert _emit(emitter) is None
    await emitter.drain()
    assert sink.entries == []


@pytest.mark.asyncio
async def test_sink_failure_is_logged_not_raised(sink, caplog) -> None:
    sink.failing = True
    emitter = ActivityEmitter(sink, SCOPE, ACTOR)

    with caplog.at_level(logging.WARNING, logger="boardsync.services.activity"):
        _emit(emitter)
        await emitter.drain()

    assert "Failed to record activity" in caplog.text
