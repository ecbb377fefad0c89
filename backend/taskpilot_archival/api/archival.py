"""Board archive/dearchive trigger and job-status endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, status

from taskpilot_archival.core.config import settings
from taskpilot_archival.core.logging import get_logger
from taskpilot_archival.schemas.archival_jobs import (
    ArchivalJob,
    ArchivalJobCreate,
    ArchivalJobRead,
    ArchivalJobStatus,
    ArchivalJobType,
)
from taskpilot_archival.services.archival.queue import QueuedBoardArchival, enqueue_board_archival
from taskpilot_archival.services.archival_jobs import ArchivalJobStore

logger = get_logger(__name__)
router = APIRouter(tags=["archival"])


def get_job_store() -> ArchivalJobStore:
    """Job store dependency; overridden in tests."""
    return ArchivalJobStore.from_settings(settings)


JOB_STORE_DEP = Depends(get_job_store)
CREATE_BODY = Body(default=None)


def _submit(
    store: ArchivalJobStore,
    *,
    board_id: UUID,
    job_type: ArchivalJobType,
    payload: ArchivalJobCreate | None,
) -> ArchivalJobRead:
    board_name = payload.board_name if payload is not None else None
    job = ArchivalJob(
        board_id=board_id,
        board_name=board_name,
        job_type=job_type,
        job_metadata=payload.job_metadata if payload is not None else None,
    )
    store.upsert(job)
    queued = enqueue_board_archival(
        QueuedBoardArchival(
            board_id=board_id,
            job_type=job_type,
            board_name=board_name,
            job_id=job.id,
        )
    )
    if not queued:
        store.update_status(job, ArchivalJobStatus.FAILED, error_message="enqueue failed")
        logger.error(
            "archival.api.enqueue_failed",
            extra={"board_id": str(board_id), "job_id": str(job.id), "job_type": job_type.value},
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Archival queue unavailable",
        )
    return ArchivalJobRead.model_validate(job, from_attributes=True)


@router.post(
    "/boards/{board_id}/archive",
    response_model=ArchivalJobRead,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Archive Board",
    description="Queue a job moving the board and its contents into cold storage.",
)
def archive_board(
    board_id: UUID,
    payload: ArchivalJobCreate | None = CREATE_BODY,
    store: ArchivalJobStore = JOB_STORE_DEP,
) -> ArchivalJobRead:
    return _submit(store, board_id=board_id, job_type=ArchivalJobType.ARCHIVE, payload=payload)


@router.post(
    "/boards/{board_id}/dearchive",
    response_model=ArchivalJobRead,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Dearchive Board",
    description="Queue a job restoring the board from its latest snapshot.",
)
def dearchive_board(
    board_id: UUID,
    payload: ArchivalJobCreate | None = CREATE_BODY,
    store: ArchivalJobStore = JOB_STORE_DEP,
) -> ArchivalJobRead:
    return _submit(store, board_id=board_id, job_type=ArchivalJobType.DEARCHIVE, payload=payload)


@router.get(
    "/archival-jobs/{job_id}",
    response_model=ArchivalJobRead,
    summary="Get Archival Job",
)
def get_archival_job(job_id: UUID, store: ArchivalJobStore = JOB_STORE_DEP) -> ArchivalJobRead:
    job = store.get(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return ArchivalJobRead.model_validate(job, from_attributes=True)


@router.get(
    "/boards/{board_id}/archival-job",
    response_model=ArchivalJobRead,
    summary="Get Latest Board Archival Job",
)
def get_board_archival_job(
    board_id: UUID,
    store: ArchivalJobStore = JOB_STORE_DEP,
) -> ArchivalJobRead:
    job = store.latest_for_board(board_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return ArchivalJobRead.model_validate(job, from_attributes=True)
