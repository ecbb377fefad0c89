"""Archive/dearchive trigger messages carried on the task queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

from taskpilot_archival.core.config import settings
from taskpilot_archival.core.logging import get_logger
from taskpilot_archival.core.time import utcnow
from taskpilot_archival.schemas.archival_jobs import ArchivalJobType
from taskpilot_archival.services.queue import RAW_TASK_TYPE, QueuedTask, enqueue_task
from taskpilot_archival.services.queue import requeue_if_failed as generic_requeue_if_failed

logger = get_logger(__name__)
TASK_TYPE = "board_archival"

# External producers may still send the PascalCase job names.
_JOB_TYPE_ALIASES: dict[str, ArchivalJobType] = {
    "archive": ArchivalJobType.ARCHIVE,
    "boardarchival": ArchivalJobType.ARCHIVE,
    "dearchive": ArchivalJobType.DEARCHIVE,
    "boarddearchival": ArchivalJobType.DEARCHIVE,
}


@dataclass(frozen=True)
class QueuedBoardArchival:
    """One request to archive or dearchive a board."""

    board_id: UUID
    job_type: ArchivalJobType
    board_name: str | None = None
    job_id: UUID = field(default_factory=uuid4)
    attempts: int = 0


def parse_job_type(raw: object) -> ArchivalJobType:
    """Normalize a job-type discriminator, rejecting unknown values."""
    if isinstance(raw, ArchivalJobType):
        return raw
    key = str(raw or "").strip().replace("_", "").replace("-", "").lower()
    job_type = _JOB_TYPE_ALIASES.get(key)
    if job_type is None:
        raise ValueError(f"Unknown job_type={raw!r}; expected 'archive' or 'dearchive'")
    return job_type


def _pick(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _task_from_payload(payload: QueuedBoardArchival) -> QueuedTask:
    return QueuedTask(
        task_type=TASK_TYPE,
        payload={
            "board_id": str(payload.board_id),
            "board_name": payload.board_name,
            "job_type": payload.job_type.value,
            "job_id": str(payload.job_id),
        },
        created_at=utcnow(),
        attempts=payload.attempts,
    )


def decode_archival_task(task: QueuedTask) -> QueuedBoardArchival:
    """Decode an archival envelope or a bare producer message.

    A message without a job id gets one generated and written back into
    `task.payload`, so a requeued retry of the same task keeps its job record.
    """
    if task.task_type not in {TASK_TYPE, RAW_TASK_TYPE}:
        raise ValueError(f"Unexpected task_type={task.task_type!r}; expected {TASK_TYPE!r}")
    payload = task.payload
    raw_board_id = _pick(payload, "board_id", "BoardId")
    if not raw_board_id:
        raise ValueError("board_id is required")
    raw_job_id = _pick(payload, "job_id", "JobId")
    if raw_job_id:
        job_id = UUID(str(raw_job_id))
    else:
        job_id = uuid4()
        payload["job_id"] = str(job_id)
    raw_name = _pick(payload, "board_name", "BoardName")
    return QueuedBoardArchival(
        board_id=UUID(str(raw_board_id)),
        job_type=parse_job_type(_pick(payload, "job_type", "JobType")),
        board_name=str(raw_name) if raw_name else None,
        job_id=job_id,
        attempts=task.attempts,
    )


def enqueue_board_archival(payload: QueuedBoardArchival) -> bool:
    """Queue an archive/dearchive request for the worker."""
    ok = enqueue_task(
        _task_from_payload(payload),
        settings.rq_queue_name,
        redis_url=settings.rq_redis_url,
    )
    if ok:
        logger.info(
            "archival.queue.enqueued",
            extra={
                "board_id": str(payload.board_id),
                "job_id": str(payload.job_id),
                "job_type": payload.job_type.value,
            },
        )
    return ok


def requeue_archival_queue_task(task: QueuedTask, *, delay_seconds: float = 0) -> bool:
    """Requeue a failed archival task with capped retries."""
    return generic_requeue_if_failed(
        task,
        settings.rq_queue_name,
        max_retries=settings.rq_dispatch_max_retries,
        redis_url=settings.rq_redis_url,
        delay_seconds=max(0.0, delay_seconds),
    )
