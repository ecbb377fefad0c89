"""Redis-backed status records for archive/dearchive jobs.

Status tracking is advisory: a Redis outage is logged and never fails the
pipeline that reported it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast
from uuid import UUID

import redis
from pydantic import ValidationError

from taskpilot_archival.core.logging import get_logger
from taskpilot_archival.core.time import utcnow
from taskpilot_archival.schemas.archival_jobs import ArchivalJob, ArchivalJobStatus

if TYPE_CHECKING:
    from taskpilot_archival.core.config import Settings

logger = get_logger(__name__)
_TERMINAL_STATUSES = frozenset({ArchivalJobStatus.COMPLETED, ArchivalJobStatus.FAILED})


class ArchivalJobStore:
    """Reads and writes `ArchivalJob` records keyed by job id."""

    def __init__(self, client: Any, *, key_prefix: str, ttl_seconds: int = 0) -> None:
        self.client = client
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> ArchivalJobStore:
        return cls(
            redis.Redis.from_url(settings.rq_redis_url),
            key_prefix=settings.archival_job_key_prefix,
            ttl_seconds=settings.archival_job_ttl_seconds,
        )

    def _job_key(self, job_id: UUID) -> str:
        return f"{self.key_prefix}:{job_id}"

    def _board_key(self, board_id: UUID) -> str:
        return f"{self.key_prefix}:board:{board_id}"

    def get(self, job_id: UUID) -> ArchivalJob | None:
        try:
            raw = cast(str | bytes | None, self.client.get(self._job_key(job_id)))
        except redis.RedisError as exc:
            logger.warning(
                "archival.job_store.read_failed",
                extra={"job_id": str(job_id), "error": str(exc)},
            )
            return None
        if raw is None:
            return None
        try:
            return ArchivalJob.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "archival.job_store.decode_failed",
                extra={"job_id": str(job_id), "error": str(exc)},
            )
            return None

    def upsert(self, job: ArchivalJob) -> bool:
        """Persist a job record and point its board at it."""
        ttl = self.ttl_seconds or None
        try:
            self.client.set(self._job_key(job.id), job.model_dump_json(), ex=ttl)
            self.client.set(self._board_key(job.board_id), str(job.id), ex=ttl)
        except redis.RedisError as exc:
            logger.warning(
                "archival.job_store.write_failed",
                extra={"job_id": str(job.id), "board_id": str(job.board_id), "error": str(exc)},
            )
            return False
        return True

    def update_status(
        self,
        job: ArchivalJob,
        status: ArchivalJobStatus,
        *,
        blob_path: str | None = None,
        error_message: str | None = None,
        processed_by: str | None = None,
    ) -> ArchivalJob:
        """Move a job to `status`, stamping timestamps, and store it."""
        now = utcnow()
        job.status = status
        if status == ArchivalJobStatus.PROCESSING:
            job.processed_at = now
            job.attempts += 1
            job.error_message = None
        if status in _TERMINAL_STATUSES:
            job.completed_at = now
        if blob_path is not None:
            job.blob_path = blob_path
        if error_message is not None:
            job.error_message = error_message
        if processed_by is not None:
            job.processed_by = processed_by
        self.upsert(job)
        return job

    def latest_for_board(self, board_id: UUID) -> ArchivalJob | None:
        try:
            raw = cast(str | bytes | None, self.client.get(self._board_key(board_id)))
        except redis.RedisError as exc:
            logger.warning(
                "archival.job_store.read_failed",
                extra={"board_id": str(board_id), "error": str(exc)},
            )
            return None
        if raw is None:
            return None
        job_id = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        try:
            return self.get(UUID(job_id))
        except ValueError:
            return None
