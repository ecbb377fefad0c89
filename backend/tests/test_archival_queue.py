# ruff: noqa: INP001
"""Archival trigger message encoding, decoding, and enqueue wiring."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from taskpilot_archival.schemas.archival_jobs import ArchivalJobType
from taskpilot_archival.services.archival import queue as archival_queue
from taskpilot_archival.services.archival.queue import (
    TASK_TYPE,
    QueuedBoardArchival,
    decode_archival_task,
    enqueue_board_archival,
    parse_job_type,
)
from taskpilot_archival.services.queue import RAW_TASK_TYPE, QueuedTask

BOARD_ID = UUID("6f3ab1ec-3ef6-4f4d-a6a7-e2d6e5d6f7a8")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("archive", ArchivalJobType.ARCHIVE),
        ("BoardArchival", ArchivalJobType.ARCHIVE),
        ("board_archival", ArchivalJobType.ARCHIVE),
        ("dearchive", ArchivalJobType.DEARCHIVE),
        ("BoardDearchival", ArchivalJobType.DEARCHIVE),
        (ArchivalJobType.DEARCHIVE, ArchivalJobType.DEARCHIVE),
    ],
)
def test_parse_job_type_accepts_known_spellings(raw: object, expected: ArchivalJobType) -> None:
    assert parse_job_type(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "restore", "BoardDeletion"])
def test_parse_job_type_rejects_unknown(raw: object) -> None:
    with pytest.raises(ValueError, match="Unknown job_type"):
        parse_job_type(raw)


def test_enqueue_board_archival_builds_envelope(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[tuple[QueuedTask, str]] = []

    def _fake_enqueue(task: QueuedTask, queue_name: str, *, redis_url: str | None = None) -> bool:
        del redis_url
        captured.append((task, queue_name))
        return True

    monkeypatch.setattr(archival_queue, "enqueue_task", _fake_enqueue)
    job_id = uuid4()
    message = QueuedBoardArchival(
        board_id=BOARD_ID,
        job_type=ArchivalJobType.DEARCHIVE,
        board_name="Sprint 1",
        job_id=job_id,
    )

    assert enqueue_board_archival(message) is True

    task, queue_name = captured[0]
    assert queue_name == "board-archival-queue"
    assert task.task_type == TASK_TYPE
    assert task.payload == {
        "board_id": str(BOARD_ID),
        "board_name": "Sprint 1",
        "job_type": "dearchive",
        "job_id": str(job_id),
    }
    assert decode_archival_task(task) == message


def test_decode_accepts_bare_pascal_case_message() -> None:
    task = QueuedTask(
        task_type=RAW_TASK_TYPE,
        payload={"BoardId": str(BOARD_ID), "BoardName": "Sprint 1", "JobType": "BoardDearchival"},
        created_at=datetime.now(UTC),
        attempts=2,
    )

    message = decode_archival_task(task)

    assert message.board_id == BOARD_ID
    assert message.board_name == "Sprint 1"
    assert message.job_type == ArchivalJobType.DEARCHIVE
    assert message.attempts == 2


def test_decode_requires_board_id() -> None:
    task = QueuedTask(
        task_type=TASK_TYPE,
        payload={"job_type": "archive"},
        created_at=datetime.now(UTC),
    )

    with pytest.raises(ValueError, match="board_id"):
        decode_archival_task(task)


def test_decode_rejects_foreign_task_type() -> None:
    task = QueuedTask(
        task_type="webhook_delivery",
        payload={"board_id": str(BOARD_ID), "job_type": "archive"},
        created_at=datetime.now(UTC),
    )

    with pytest.raises(ValueError, match="Unexpected task_type"):
        decode_archival_task(task)


def test_decode_pins_generated_job_id_for_retries() -> None:
    task = QueuedTask(
        task_type=RAW_TASK_TYPE,
        payload={"BoardId": str(BOARD_ID), "JobType": "BoardArchival"},
        created_at=datetime.now(UTC),
    )

    first = decode_archival_task(task)
    retried = decode_archival_task(replace(task, attempts=1))

    assert retried.job_id == first.job_id
    assert json.loads(task.to_json())["payload"]["job_id"] == str(first.job_id)
