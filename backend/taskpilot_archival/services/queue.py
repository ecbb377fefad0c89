"""Redis list queue carrying JSON task envelopes for the archival worker.

Producers push envelopes with `enqueue_task`; the worker pops them with
`dequeue_task`. Delayed deliveries (retries with backoff) sit in a sorted set
scored by due time and are moved onto the list once due.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, cast

import redis

from taskpilot_archival.core.config import settings
from taskpilot_archival.core.logging import get_logger

logger = get_logger(__name__)

# Task type given to messages pushed without an envelope by external producers.
RAW_TASK_TYPE = "raw"
_SCHEDULED_SUFFIX = ":scheduled"
_DRAIN_BATCH_SIZE = 100


@dataclass(frozen=True)
class QueuedTask:
    """Envelope around one unit of queued work."""

    task_type: str
    payload: dict[str, Any]
    created_at: datetime
    attempts: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {
                "task_type": self.task_type,
                "payload": self.payload,
                "created_at": self.created_at.isoformat(),
                "attempts": self.attempts,
            },
            sort_keys=True,
        )


def _redis_client(redis_url: str | None = None) -> redis.Redis:
    return redis.Redis.from_url(redis_url or settings.rq_redis_url)


def _scheduled_key(queue_name: str) -> str:
    return f"{queue_name}{_SCHEDULED_SUFFIX}"


def _promote_due_tasks(client: redis.Redis, queue_name: str) -> float | None:
    """Move due delayed tasks onto the queue; return seconds until the next one."""
    scheduled = _scheduled_key(queue_name)
    now = time.time()
    due = cast(
        list[str | bytes],
        client.zrangebyscore(scheduled, "-inf", now, start=0, num=_DRAIN_BATCH_SIZE),
    )
    if due:
        client.lpush(queue_name, *due)
        client.zrem(scheduled, *due)
        logger.debug("queue.promoted_delayed", extra={"queue_name": queue_name, "count": len(due)})

    upcoming = cast(
        list[tuple[str | bytes, float]],
        client.zrangebyscore(scheduled, now, "+inf", start=0, num=1, withscores=True),
    )
    if not upcoming:
        return None
    return max(0.0, float(upcoming[0][1]) - now)


def enqueue_task(
    task: QueuedTask,
    queue_name: str,
    *,
    redis_url: str | None = None,
) -> bool:
    """Push a task envelope; returns False (and logs) if Redis rejects it."""
    try:
        _redis_client(redis_url=redis_url).lpush(queue_name, task.to_json())
    except redis.RedisError as exc:
        logger.warning(
            "queue.enqueue_failed",
            extra={"task_type": task.task_type, "queue_name": queue_name, "error": str(exc)},
        )
        return False
    logger.info(
        "queue.enqueued",
        extra={"task_type": task.task_type, "queue_name": queue_name, "attempt": task.attempts},
    )
    return True


def enqueue_task_with_delay(
    task: QueuedTask,
    queue_name: str,
    *,
    delay_seconds: float,
    redis_url: str | None = None,
) -> bool:
    """Enqueue now, or park the task in the delayed set until it is due."""
    delay = max(0.0, float(delay_seconds))
    if delay == 0:
        return enqueue_task(task, queue_name, redis_url=redis_url)
    try:
        _redis_client(redis_url=redis_url).zadd(
            _scheduled_key(queue_name),
            {task.to_json(): time.time() + delay},
        )
    except redis.RedisError as exc:
        logger.warning(
            "queue.schedule_failed",
            extra={
                "task_type": task.task_type,
                "queue_name": queue_name,
                "delay_seconds": delay,
                "error": str(exc),
            },
        )
        return False
    logger.info(
        "queue.scheduled",
        extra={"task_type": task.task_type, "queue_name": queue_name, "delay_seconds": delay},
    )
    return True


def decode_task(raw: str | bytes) -> QueuedTask:
    """Parse one queue entry; bare JSON objects become `RAW_TASK_TYPE` tasks."""
    text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
    body = json.loads(text)
    if not isinstance(body, dict):
        raise ValueError(f"queue entry must be a JSON object, got {type(body).__name__}")
    if "task_type" in body and "payload" in body:
        return QueuedTask(
            task_type=str(body["task_type"]),
            payload=dict(body["payload"]),
            created_at=datetime.fromisoformat(body["created_at"]),
            attempts=int(body.get("attempts", 0)),
        )
    return QueuedTask(
        task_type=RAW_TASK_TYPE,
        payload=body,
        created_at=datetime.now(UTC),
        attempts=int(body.get("attempts", 0) or 0),
    )


def dequeue_task(
    queue_name: str,
    *,
    redis_url: str | None = None,
    block: bool = False,
    block_timeout: float = 0,
) -> QueuedTask | None:
    """Pop the oldest task, optionally waiting up to `block_timeout` seconds."""
    client = _redis_client(redis_url=redis_url)
    raw: str | bytes | None
    if block:
        next_due = _promote_due_tasks(client, queue_name)
        timeout = max(0.0, float(block_timeout))
        if next_due is not None:
            timeout = min(timeout, next_due) if timeout else next_due
        popped = cast(
            tuple[bytes | str, bytes | str] | None,
            client.brpop([queue_name], timeout=timeout),
        )
        raw = popped[1] if popped is not None else None
    else:
        raw = cast(str | bytes | None, client.rpop(queue_name))
    if raw is None:
        _promote_due_tasks(client, queue_name)
        return None
    try:
        return decode_task(raw)
    except (ValueError, KeyError, TypeError) as exc:
        logger.error(
            "queue.decode_failed",
            extra={"queue_name": queue_name, "raw_payload": str(raw), "error": str(exc)},
        )
        raise


def requeue_if_failed(
    task: QueuedTask,
    queue_name: str,
    *,
    max_retries: int,
    redis_url: str | None = None,
    delay_seconds: float = 0,
) -> bool:
    """Requeue a failed task with one more attempt; False once retries run out."""
    retried = replace(task, attempts=task.attempts + 1)
    if retried.attempts > max_retries:
        logger.warning(
            "queue.retries_exhausted",
            extra={
                "task_type": task.task_type,
                "queue_name": queue_name,
                "attempts": retried.attempts,
            },
        )
        return False
    return enqueue_task_with_delay(
        retried,
        queue_name,
        delay_seconds=delay_seconds,
        redis_url=redis_url,
    )
