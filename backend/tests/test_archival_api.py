# ruff: noqa: INP001
"""HTTP trigger and job-status endpoints for board archival."""

from __future__ import annotations

from collections.abc import Iterator
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from taskpilot_archival.api import archival as archival_api
from taskpilot_archival.main import app
from taskpilot_archival.schemas.archival_jobs import ArchivalJobType
from taskpilot_archival.services.archival.queue import QueuedBoardArchival
from taskpilot_archival.services.archival_jobs import ArchivalJobStore


class _FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str, ex: int | None = None) -> None:
        del ex
        self.data[key] = value


@pytest.fixture
def store() -> Iterator[ArchivalJobStore]:
    job_store = ArchivalJobStore(_FakeRedis(), key_prefix="archival-job")
    app.dependency_overrides[archival_api.get_job_store] = lambda: job_store
    yield job_store
    app.dependency_overrides.pop(archival_api.get_job_store, None)


@pytest.fixture
def enqueued(monkeypatch: pytest.MonkeyPatch) -> list[QueuedBoardArchival]:
    sent: list[QueuedBoardArchival] = []

    def _fake_enqueue(payload: QueuedBoardArchival) -> bool:
        sent.append(payload)
        return True

    monkeypatch.setattr(archival_api, "enqueue_board_archival", _fake_enqueue)
    return sent


def _client() -> TestClient:
    # Plain client, no lifespan: startup would touch the database.
    return TestClient(app)


@pytest.mark.parametrize(
    ("action", "job_type"),
    [("archive", ArchivalJobType.ARCHIVE), ("dearchive", ArchivalJobType.DEARCHIVE)],
)
def test_trigger_queues_job_and_returns_202(
    store: ArchivalJobStore,
    enqueued: list[QueuedBoardArchival],
    action: str,
    job_type: ArchivalJobType,
) -> None:
    board_id = uuid4()

    response = _client().post(
        f"/api/v1/boards/{board_id}/{action}",
        json={"board_name": "Sprint 1", "job_metadata": "requested-by=ops"},
    )

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "pending"
    assert body["job_type"] == job_type.value
    assert body["board_name"] == "Sprint 1"
    assert body["job_metadata"] == "requested-by=ops"
    assert [(m.board_id, m.job_type, str(m.job_id)) for m in enqueued] == [
        (board_id, job_type, body["id"])
    ]
    stored = store.get(UUID(body["id"]))
    assert stored is not None
    assert stored.job_metadata == "requested-by=ops"


def test_trigger_without_body(store: ArchivalJobStore, enqueued: list[QueuedBoardArchival]) -> None:
    response = _client().post(f"/api/v1/boards/{uuid4()}/archive")

    assert response.status_code == 202
    assert response.json()["board_name"] is None
    assert len(enqueued) == 1


def test_trigger_returns_503_when_queue_unavailable(
    store: ArchivalJobStore,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    board_id = uuid4()
    monkeypatch.setattr(archival_api, "enqueue_board_archival", lambda payload: False)

    response = _client().post(f"/api/v1/boards/{board_id}/archive")

    assert response.status_code == 503
    job = store.latest_for_board(board_id)
    assert job is not None
    assert job.status == "failed"


def test_job_lookup_endpoints(store: ArchivalJobStore, enqueued: list[QueuedBoardArchival]) -> None:
    board_id = uuid4()
    client = _client()
    created = client.post(f"/api/v1/boards/{board_id}/dearchive").json()

    by_id = client.get(f"/api/v1/archival-jobs/{created['id']}")
    by_board = client.get(f"/api/v1/boards/{board_id}/archival-job")

    assert by_id.status_code == 200
    assert by_id.json()["id"] == created["id"]
    assert by_board.status_code == 200
    assert by_board.json()["id"] == created["id"]
    assert client.get(f"/api/v1/archival-jobs/{uuid4()}").status_code == 404
    assert client.get(f"/api/v1/boards/{uuid4()}/archival-job").status_code == 404


@pytest.mark.parametrize("path", ["/health", "/healthz", "/readyz"])
def test_health_probes(path: str) -> None:
    response = _client().get(path)

    assert response.status_code == 200
    assert response.json() == {"ok": True}
