# ruff: noqa: INP001
"""Snapshot naming, codec, and state id remap tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from uuid import UUID, uuid4

import pytest

from taskpilot_archival.models import Board, BoardMember, Comment, State, Task
from taskpilot_archival.schemas.archival import SNAPSHOT_FORMAT_VERSION, StateSnapshot
from taskpilot_archival.services.archival import codec
from taskpilot_archival.services.archival.errors import SnapshotMalformedError, UnmappedStateError
from taskpilot_archival.services.archival.loader import BoardAggregate
from taskpilot_archival.services.archival.remap import build_state_id_map, resolve_state_id
from taskpilot_archival.services.archival.snapshots import (
    select_latest_snapshot,
    snapshot_blob_name,
    snapshot_prefix,
)

BOARD_ID = UUID("6f3ab1ec-3ef6-4f4d-a6a7-e2d6e5d6f7a8")
T0 = datetime(2026, 3, 2, 9, 0, 0)


def _aggregate() -> BoardAggregate:
    owner_id = uuid4()
    board = Board(
        id=BOARD_ID,
        name="Sprint 1",
        description=None,
        owner_id=owner_id,
        created_at=T0,
        updated_at=T0,
    )
    todo = State(id=11, board_id=BOARD_ID, name="Todo", order=0, created_at=T0, updated_at=T0)
    done = State(id=12, board_id=BOARD_ID, name="Done", order=1, created_at=T0, updated_at=T0)
    first = Task(id=uuid4(), board_id=BOARD_ID, title="A", state_id=11, created_at=T0, updated_at=T0)
    second = Task(id=uuid4(), board_id=BOARD_ID, title="B", state_id=12, created_at=T0, updated_at=T0)
    comment = Comment(
        id=uuid4(), task_id=second.id, author_id=owner_id, content="hi", created_at=T0, updated_at=T0
    )
    member = BoardMember(board_id=BOARD_ID, user_id=owner_id, created_at=T0, updated_at=T0)
    return BoardAggregate(
        board=board,
        states=[todo, done],
        tasks=[first, second],
        comments=[comment],
        members=[member],
    )


def test_snapshot_blob_name_is_fixed_width() -> None:
    name = snapshot_blob_name("archivals", BOARD_ID, datetime(2026, 1, 2, 3, 4, 5))
    assert name == f"archivals/{BOARD_ID}_20260102030405000000.json"
    assert name.startswith(snapshot_prefix("archivals", BOARD_ID))


def test_select_latest_snapshot_orders_chronologically() -> None:
    t1 = datetime(2025, 12, 31, 23, 59, 59, 999999)
    t2 = datetime(2026, 1, 1, 0, 0, 0)
    t3 = datetime(2026, 1, 1, 0, 0, 0, 1)
    names = [snapshot_blob_name("archivals", BOARD_ID, t) for t in (t2, t3, t1)]
    names += [
        f"archivals/{BOARD_ID}_2027.json",
        f"archivals/{uuid4()}_20990101000000000000.json",
        f"other/{BOARD_ID}_20990101000000000000.json",
    ]

    latest = select_latest_snapshot(names, archive_prefix="archivals", board_id=BOARD_ID)

    assert latest == snapshot_blob_name("archivals", BOARD_ID, t3)


def test_select_latest_snapshot_returns_none_without_candidates() -> None:
    assert select_latest_snapshot([], archive_prefix="archivals", board_id=BOARD_ID) is None


def test_encode_nests_comments_and_keeps_original_state_ids() -> None:
    document = codec.encode_aggregate(_aggregate())

    assert document.format_version == SNAPSHOT_FORMAT_VERSION
    assert [s.id for s in document.states] == [11, 12]
    assert [t.title for t in document.tasks] == ["A", "B"]
    assert document.tasks[0].comments == []
    assert [c.content for c in document.tasks[1].comments] == ["hi"]
    assert document.comment_count == 1
    assert document.members[0].role == "member"


def test_dumps_writes_every_key_including_nulls() -> None:
    body = json.loads(codec.dumps(codec.encode_aggregate(_aggregate())))

    assert list(body) == [
        "format_version",
        "board_id",
        "name",
        "description",
        "owner_id",
        "created_at",
        "updated_at",
        "states",
        "tasks",
        "members",
    ]
    assert body["description"] is None
    assert body["tasks"][0]["due_date"] is None
    assert set(body["states"][0]) == {"id", "name", "order", "created_at", "updated_at"}


def test_loads_round_trips_dumps() -> None:
    document = codec.encode_aggregate(_aggregate())
    assert codec.loads(codec.dumps(document)) == document


def test_loads_does_not_default_missing_nullable_keys() -> None:
    body = json.loads(codec.dumps(codec.encode_aggregate(_aggregate())))
    del body["description"]

    with pytest.raises(SnapshotMalformedError):
        codec.loads(json.dumps(body).encode())


@pytest.mark.parametrize(
    ("path", "value"),
    [
        (("states", 0, "id"), "1"),
        (("states", 0, "order"), True),
        (("tasks", 0, "created_at"), 0),
        (("format_version",), "1"),
    ],
)
def test_loads_rejects_coercible_values(path: tuple[str | int, ...], value: object) -> None:
    body = json.loads(codec.dumps(codec.encode_aggregate(_aggregate())))
    target = body
    for key in path[:-1]:
        target = target[key]
    target[path[-1]] = value

    with pytest.raises(SnapshotMalformedError):
        codec.loads(json.dumps(body).encode())


def _state_snapshot(state_id: int, name: str, order: int) -> StateSnapshot:
    stamp = T0 + timedelta(seconds=order)
    return StateSnapshot(id=state_id, name=name, order=order, created_at=stamp, updated_at=stamp)


def test_build_state_id_map_matches_on_attributes() -> None:
    snapshots = [_state_snapshot(1, "Todo", 0), _state_snapshot(2, "Done", 1)]
    persisted = [
        State(id=41, board_id=BOARD_ID, name="Done", order=1, created_at=T0 + timedelta(seconds=1),
              updated_at=T0 + timedelta(seconds=1)),
        State(id=40, board_id=BOARD_ID, name="Todo", order=0, created_at=T0, updated_at=T0),
    ]

    assert build_state_id_map(snapshots, persisted) == {1: 40, 2: 41}


def test_build_state_id_map_leaves_unmatched_ids_out() -> None:
    snapshots = [_state_snapshot(1, "Todo", 0)]
    persisted = [State(id=40, board_id=BOARD_ID, name="Todo", order=5, created_at=T0, updated_at=T0)]

    assert build_state_id_map(snapshots, persisted) == {}


def test_resolve_state_id_policies() -> None:
    assert resolve_state_id({1: 40}, 1, policy="fail") == 40
    assert resolve_state_id({1: 40}, 7, policy="fallback") == 7
    with pytest.raises(UnmappedStateError) as exc_info:
        resolve_state_id({1: 40}, 7, policy="fail", board_id=BOARD_ID)
    assert exc_info.value.state_id == 7
    assert exc_info.value.board_id == BOARD_ID
