"""Archive pipeline: snapshot a board to cold storage and prune its rows.

Steps run strictly in order (load, encode, upload, mark, delete children,
commit). All row changes are staged on one session and committed once at the
end. A failure at any step is logged and re-raised; earlier steps are not
undone, so a snapshot uploaded before a failed commit stays in storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from taskpilot_archival.core.config import settings
from taskpilot_archival.core.logging import get_logger
from taskpilot_archival.core.time import utcnow
from taskpilot_archival.db import crud
from taskpilot_archival.services.archival import codec
from taskpilot_archival.services.archival.loader import BoardAggregate, load_board_aggregate
from taskpilot_archival.services.archival.phases import ArchivePhase, PhaseTracker
from taskpilot_archival.services.archival.snapshots import snapshot_blob_name

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskpilot_archival.models.boards import Board
    from taskpilot_archival.services.blob_storage import BlobStorage

logger = get_logger(__name__)


@dataclass(frozen=True)
class ArchiveResult:
    """Summary of a completed archive run."""

    board_id: UUID
    blob_name: str
    archived_at: datetime | None
    newly_archived: bool
    state_count: int
    task_count: int
    comment_count: int
    member_count: int


def mark_board_archived(board: Board, *, now: datetime) -> bool:
    """Flag the board archived; a board that already is keeps its timestamp.

    Returns True when the flag was changed.
    """
    if board.is_archived:
        return False
    board.is_archived = True
    board.archived_at = now
    return True


class BoardArchivalService:
    """Moves one board aggregate from the database into a snapshot blob."""

    def __init__(
        self,
        session: AsyncSession,
        blobs: BlobStorage,
        *,
        archive_prefix: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.blobs = blobs
        self.archive_prefix = archive_prefix or settings.blob_archive_prefix
        self._clock = clock

    async def _delete_children(self, aggregate: BoardAggregate) -> None:
        # Flush per level so comment/task/state rows go in FK-safe order.
        for rows in (aggregate.comments, aggregate.tasks, aggregate.states, aggregate.members):
            if rows:
                await crud.remove(self.session, *rows)
                await self.session.flush()

    async def archive_board(self, board_id: UUID, *, board_name: str | None = None) -> ArchiveResult:
        """Snapshot, upload, mark archived, and delete the board's dependents."""
        with PhaseTracker(
            "archive",
            board_id,
            ArchivePhase.LOADED,
            board_name=board_name,
        ) as tracker:
            aggregate = await load_board_aggregate(self.session, board_id)

            tracker.advance(ArchivePhase.ENCODED)
            document = codec.encode_aggregate(aggregate)
            payload = codec.dumps(document)

            tracker.advance(ArchivePhase.UPLOADED)
            taken_at = self._clock()
            blob_name = snapshot_blob_name(self.archive_prefix, board_id, taken_at)
            await self.blobs.upload(blob_name, payload, codec.SNAPSHOT_CONTENT_TYPE)
            logger.info(
                "archival.archive.uploaded",
                extra={"board_id": str(board_id), "blob": blob_name, "size_bytes": len(payload)},
            )

            tracker.advance(ArchivePhase.MARKED)
            board = aggregate.board
            newly_archived = mark_board_archived(board, now=taken_at)
            if newly_archived:
                crud.add(self.session, board)
            else:
                logger.info(
                    "archival.archive.already_archived",
                    extra={"board_id": str(board_id), "archived_at": str(board.archived_at)},
                )

            tracker.advance(ArchivePhase.CHILDREN_DELETED)
            await self._delete_children(aggregate)

            tracker.advance(ArchivePhase.COMMITTED)
            await crud.save(self.session)
            tracker.finish()

        logger.info(
            "archival.archive.completed",
            extra={
                "board_id": str(board_id),
                "blob": blob_name,
                "states": len(aggregate.states),
                "tasks": len(aggregate.tasks),
                "comments": len(aggregate.comments),
                "members": len(aggregate.members),
            },
        )
        return ArchiveResult(
            board_id=board_id,
            blob_name=blob_name,
            archived_at=board.archived_at,
            newly_archived=newly_archived,
            state_count=len(aggregate.states),
            task_count=len(aggregate.tasks),
            comment_count=len(aggregate.comments),
            member_count=len(aggregate.members),
        )
