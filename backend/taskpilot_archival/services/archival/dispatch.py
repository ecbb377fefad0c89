"""Queue-side entry points that run archive/dearchive jobs."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager, nullcontext
from typing import TYPE_CHECKING, Any

import redis
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from taskpilot_archival.core.config import settings
from taskpilot_archival.core.logging import get_logger
from taskpilot_archival.db.session import unit_of_work
from taskpilot_archival.schemas.archival_jobs import ArchivalJob, ArchivalJobStatus, ArchivalJobType
from taskpilot_archival.services.archival.archive import ArchiveResult, BoardArchivalService
from taskpilot_archival.services.archival.errors import ArchivalError
from taskpilot_archival.services.archival.locks import board_lock
from taskpilot_archival.services.archival.queue import (
    QueuedBoardArchival,
    decode_archival_task,
    requeue_archival_queue_task,
)
from taskpilot_archival.services.archival.restore import BoardDearchivalService, RestoreResult
from taskpilot_archival.services.archival_jobs import ArchivalJobStore
from taskpilot_archival.services.blob_storage import S3BlobStorage

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import async_sessionmaker
    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskpilot_archival.services.blob_storage import BlobStorage
    from taskpilot_archival.services.queue import QueuedTask

logger = get_logger(__name__)

BlobFactory = Callable[[], AbstractAsyncContextManager["BlobStorage"]]

__all__ = [
    "is_retryable_archival_error",
    "process_archival_queue_task",
    "requeue_archival_queue_task",
    "run_archival_job",
]


def _default_blob_factory() -> AbstractAsyncContextManager[BlobStorage]:
    return S3BlobStorage.from_settings(settings)


def _job_store() -> ArchivalJobStore:
    return ArchivalJobStore.from_settings(settings)


def _lock_client() -> Any:
    return redis.Redis.from_url(settings.rq_redis_url)


def is_retryable_archival_error(exc: BaseException) -> bool:
    """Whether redelivering the message could plausibly succeed."""
    if isinstance(exc, ArchivalError):
        return exc.retryable
    # Constraint violations come from snapshot content and repeat on every attempt.
    if isinstance(exc, IntegrityError):
        return False
    return isinstance(exc, SQLAlchemyError | TimeoutError | redis.RedisError)


async def run_archival_job(
    message: QueuedBoardArchival,
    *,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    blob_factory: BlobFactory | None = None,
) -> ArchiveResult | RestoreResult:
    """Run one pipeline inside a single DB session and a single blob client."""
    async with (blob_factory or _default_blob_factory)() as blobs, unit_of_work(
        session_maker
    ) as session:
        if message.job_type == ArchivalJobType.ARCHIVE:
            return await BoardArchivalService(session, blobs).archive_board(
                message.board_id, board_name=message.board_name
            )
        return await BoardDearchivalService(session, blobs).dearchive_board(
            message.board_id, board_name=message.board_name
        )


def _single_flight(message: QueuedBoardArchival) -> AbstractAsyncContextManager[None]:
    if not settings.archival_board_lock_enabled:
        return nullcontext()
    return board_lock(
        _lock_client(),
        message.board_id,
        prefix=settings.archival_job_key_prefix,
        timeout_seconds=settings.archival_board_lock_timeout_seconds,
    )


async def process_archival_queue_task(task: QueuedTask) -> None:
    """Worker handler: run the job and keep its status record current."""
    message = decode_archival_task(task)
    store = _job_store()
    job = store.get(message.job_id) or ArchivalJob(
        id=message.job_id,
        board_id=message.board_id,
        board_name=message.board_name,
        job_type=message.job_type,
    )
    store.update_status(job, ArchivalJobStatus.PROCESSING, processed_by=socket.gethostname())
    log_context = {
        "board_id": str(message.board_id),
        "job_id": str(message.job_id),
        "job_type": message.job_type.value,
        "attempt": task.attempts,
    }
    logger.info("archival.job.started", extra=log_context)

    try:
        async with _single_flight(message):
            result = await asyncio.wait_for(
                run_archival_job(message),
                timeout=settings.archival_job_timeout_seconds,
            )
    except Exception as exc:
        store.update_status(
            job,
            ArchivalJobStatus.FAILED,
            error_message=str(exc) or type(exc).__name__,
        )
        logger.warning(
            "archival.job.failed",
            extra={
                **log_context,
                "error_type": type(exc).__name__,
                "retryable": is_retryable_archival_error(exc),
            },
        )
        raise

    store.update_status(job, ArchivalJobStatus.COMPLETED, blob_path=result.blob_name)
    logger.info("archival.job.completed", extra={**log_context, "blob": result.blob_name})
