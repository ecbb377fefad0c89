"""Per-board single-flight lock shared by archive and dearchive pipelines."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

import redis
from redis.exceptions import LockError

from taskpilot_archival.core.logging import get_logger
from taskpilot_archival.services.archival.errors import BoardLockedError, StoreFailureError

logger = get_logger(__name__)


def board_lock_name(board_id: UUID, *, prefix: str) -> str:
    return f"{prefix}:lock:{board_id}"


@asynccontextmanager
async def board_lock(
    client: Any,
    board_id: UUID,
    *,
    prefix: str,
    timeout_seconds: float,
) -> AsyncIterator[None]:
    """Hold the board's lock for the duration of the block.

    Raises `BoardLockedError` without waiting when another pipeline holds it.
    The lock expires after `timeout_seconds` so a crashed worker cannot wedge
    the board.
    """
    lock = client.lock(
        board_lock_name(board_id, prefix=prefix),
        timeout=timeout_seconds,
        blocking=False,
    )
    try:
        acquired = lock.acquire()
    except redis.RedisError as exc:
        raise StoreFailureError(
            f"could not acquire archival lock: {exc}", board_id=board_id
        ) from exc
    if not acquired:
        raise BoardLockedError(
            f"board {board_id} is locked by another archival job", board_id=board_id
        )
    logger.debug("archival.lock.acquired", extra={"board_id": str(board_id)})
    try:
        yield
    finally:
        try:
            lock.release()
        except (LockError, redis.RedisError) as exc:
            # Lock expired mid-run or Redis went away; the TTL cleans up.
            logger.warning(
                "archival.lock.release_failed",
                extra={"board_id": str(board_id), "error": str(exc)},
            )
