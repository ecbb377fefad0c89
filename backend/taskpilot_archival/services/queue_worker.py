"""Queue worker dispatching archival tasks by task type."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from taskpilot_archival.core.config import settings
from taskpilot_archival.core.logging import configure_logging, get_logger
from taskpilot_archival.services.archival.dispatch import (
    is_retryable_archival_error,
    process_archival_queue_task,
    requeue_archival_queue_task,
)
from taskpilot_archival.services.archival.queue import TASK_TYPE as ARCHIVAL_TASK_TYPE
from taskpilot_archival.services.queue import RAW_TASK_TYPE, QueuedTask, dequeue_task

logger = get_logger(__name__)
_WORKER_BLOCK_TIMEOUT_SECONDS = 5.0


def _backoff_seconds(attempts: int) -> float:
    return min(
        settings.rq_dispatch_retry_base_seconds * (2 ** max(0, attempts)),
        settings.rq_dispatch_retry_max_seconds,
    )


@dataclass(frozen=True)
class _TaskHandler:
    handler: Callable[[QueuedTask], Awaitable[None]]
    attempts_to_delay: Callable[[int], float]
    requeue: Callable[[QueuedTask, float], bool]
    is_retryable: Callable[[BaseException], bool]


_ARCHIVAL_HANDLER = _TaskHandler(
    handler=process_archival_queue_task,
    attempts_to_delay=_backoff_seconds,
    requeue=lambda task, delay: requeue_archival_queue_task(task, delay_seconds=delay),
    is_retryable=is_retryable_archival_error,
)

# Bare messages from external producers carry archival requests as well.
_TASK_HANDLERS: dict[str, _TaskHandler] = {
    ARCHIVAL_TASK_TYPE: _ARCHIVAL_HANDLER,
    RAW_TASK_TYPE: _ARCHIVAL_HANDLER,
}


def _compute_jitter(base_delay: float) -> float:
    return random.uniform(0, min(settings.rq_dispatch_retry_max_seconds / 10, base_delay * 0.1))


async def _handle(task: QueuedTask, handler: _TaskHandler) -> bool:
    try:
        await handler.handler(task)
    except Exception as exc:
        logger.exception(
            "queue.worker.failed",
            extra={"task_type": task.task_type, "attempt": task.attempts, "error": str(exc)},
        )
        if not handler.is_retryable(exc):
            logger.warning(
                "queue.worker.drop_task",
                extra={"task_type": task.task_type, "attempt": task.attempts, "reason": "fatal"},
            )
            return False
        base_delay = handler.attempts_to_delay(task.attempts)
        if not handler.requeue(task, base_delay + _compute_jitter(base_delay)):
            logger.warning(
                "queue.worker.drop_task",
                extra={
                    "task_type": task.task_type,
                    "attempt": task.attempts,
                    "reason": "retries_exhausted",
                },
            )
        return False
    logger.info(
        "queue.worker.success",
        extra={"task_type": task.task_type, "attempt": task.attempts},
    )
    return True


async def flush_queue(*, block: bool = False, block_timeout: float = 0) -> int:
    """Consume queued tasks until the queue is empty; return how many succeeded."""
    processed = 0
    while True:
        try:
            task = dequeue_task(
                settings.rq_queue_name,
                redis_url=settings.rq_redis_url,
                block=block,
                block_timeout=block_timeout,
            )
        except Exception:
            logger.exception(
                "queue.worker.dequeue_failed",
                extra={"queue_name": settings.rq_queue_name},
            )
            continue

        if task is None:
            break

        handler = _TASK_HANDLERS.get(task.task_type)
        if handler is None:
            logger.warning(
                "queue.worker.task_unhandled",
                extra={"task_type": task.task_type, "queue_name": settings.rq_queue_name},
            )
            continue

        if await _handle(task, handler):
            processed += 1
        await asyncio.sleep(settings.rq_dispatch_throttle_seconds)

    if processed > 0:
        logger.info("queue.worker.batch_complete", extra={"count": processed})
    return processed


async def _run_worker_loop() -> None:
    while True:
        try:
            await flush_queue(
                block=True,
                # Finite timeout so delayed retries get promoted regularly.
                block_timeout=_WORKER_BLOCK_TIMEOUT_SECONDS,
            )
        except Exception:
            logger.exception(
                "queue.worker.loop_failed",
                extra={"queue_name": settings.rq_queue_name},
            )
            await asyncio.sleep(1)


def run_worker() -> None:
    """Console entrypoint for continuous archival queue processing."""
    configure_logging()
    logger.info(
        "queue.worker.started",
        extra={
            "queue_name": settings.rq_queue_name,
            "throttle_seconds": settings.rq_dispatch_throttle_seconds,
        },
    )
    try:
        asyncio.run(_run_worker_loop())
    except KeyboardInterrupt:
        logger.info("queue.worker.interrupted")
    finally:
        logger.info("queue.worker.stopped", extra={"queue_name": settings.rq_queue_name})
