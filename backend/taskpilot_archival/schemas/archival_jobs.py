"""Schemas for archival job status records and the HTTP trigger surface."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import Field
from sqlmodel import SQLModel

from taskpilot_archival.core.time import utcnow

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class ArchivalJobType(StrEnum):
    """Operation requested for a board."""

    ARCHIVE = "archive"
    DEARCHIVE = "dearchive"


class ArchivalJobStatus(StrEnum):
    """Lifecycle of one archival job as tracked in the job store."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ArchivalJob(SQLModel):
    """Status record for one archive or dearchive request."""

    id: UUID = Field(default_factory=uuid4)
    board_id: UUID
    board_name: str | None = None
    job_type: ArchivalJobType
    status: ArchivalJobStatus = ArchivalJobStatus.PENDING
    started_at: datetime = Field(default_factory=utcnow)
    processed_at: datetime | None = None
    completed_at: datetime | None = None
    blob_path: str | None = None
    error_message: str | None = None
    processed_by: str | None = None
    attempts: int = 0
    # `metadata` is reserved on SQLModel classes.
    job_metadata: str | None = None


class ArchivalJobCreate(SQLModel):
    """Optional body for archive/dearchive trigger endpoints."""

    board_name: str | None = Field(
        default=None,
        description="Display name carried through to logs and the job record.",
        examples=["Sprint 1"],
    )
    job_metadata: str | None = Field(
        default=None,
        description="Free-form caller context stored on the job record.",
        examples=["requested-by=retention-policy"],
    )


class ArchivalJobRead(ArchivalJob):
    """Job record as returned by the API."""
