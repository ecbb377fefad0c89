"""Dearchive pipeline: rebuild a board aggregate from its newest snapshot.

State rows are recreated without their ids, so the store assigns fresh
surrogate keys; task state references are then rewritten through a map
from snapshot ids to new ids. Board, task, and comment ids are reused as-is.
Everything up to the commit is one unit of work. The snapshot blob is
deleted only after the commit succeeds, and a failed delete does not fail
the restore.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlmodel import col, select

from taskpilot_archival.core.config import settings
from taskpilot_archival.core.logging import get_logger
from taskpilot_archival.core.time import utcnow
from taskpilot_archival.db import crud
from taskpilot_archival.models.board_members import BoardMember
from taskpilot_archival.models.boards import Board
from taskpilot_archival.models.comments import Comment
from taskpilot_archival.models.states import State
from taskpilot_archival.models.tasks import Task
from taskpilot_archival.services.archival import codec
from taskpilot_archival.services.archival.errors import (
    SnapshotMalformedError,
    SnapshotNotFoundError,
)
from taskpilot_archival.services.archival.phases import PhaseTracker, RestorePhase
from taskpilot_archival.services.archival.remap import (
    UnmappedStatePolicy,
    build_state_id_map,
    resolve_state_id,
)
from taskpilot_archival.services.archival.snapshots import (
    select_latest_snapshot,
    snapshot_prefix,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskpilot_archival.schemas.archival import BoardArchivalDocument
    from taskpilot_archival.services.blob_storage import BlobStorage

logger = get_logger(__name__)


@dataclass(frozen=True)
class RestoreResult:
    """Summary of a completed dearchive run."""

    board_id: UUID
    blob_name: str
    board_created: bool
    blob_reclaimed: bool
    state_id_map: dict[int, int] = field(default_factory=dict)
    task_count: int = 0
    comment_count: int = 0
    member_count: int = 0


class BoardDearchivalService:
    """Restores one board aggregate from cold storage into the database."""

    def __init__(
        self,
        session: AsyncSession,
        blobs: BlobStorage,
        *,
        archive_prefix: str | None = None,
        unmapped_state_policy: UnmappedStatePolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.blobs = blobs
        self.archive_prefix = archive_prefix or settings.blob_archive_prefix
        self.unmapped_state_policy: UnmappedStatePolicy = (
            unmapped_state_policy or settings.archival_unmapped_state_policy
        )
        self._clock = clock

    async def locate_latest_snapshot(self, board_id: UUID) -> str:
        """Return the newest snapshot blob name for the board."""
        names = await self.blobs.list(snapshot_prefix(self.archive_prefix, board_id))
        latest = select_latest_snapshot(
            names,
            archive_prefix=self.archive_prefix,
            board_id=board_id,
        )
        if latest is None:
            raise SnapshotNotFoundError(
                f"no archival snapshot found for board {board_id}",
                board_id=board_id,
            )
        return latest

    async def _purge_children(self, board_id: UUID) -> int:
        task_ids = select(col(Task.id)).where(col(Task.board_id) == board_id)
        purged = await crud.delete_where(self.session, Comment, col(Comment.task_id).in_(task_ids))
        purged += await crud.delete_where(self.session, Task, col(Task.board_id) == board_id)
        purged += await crud.delete_where(self.session, State, col(State.board_id) == board_id)
        purged += await crud.delete_where(
            self.session,
            BoardMember,
            col(BoardMember.board_id) == board_id,
        )
        return purged

    async def _upsert_board(self, document: BoardArchivalDocument) -> tuple[Board, bool]:
        board = await crud.get_by_id(self.session, Board, document.board_id)
        created = board is None
        if board is None:
            board = Board(
                id=document.board_id,
                name=document.name,
                owner_id=document.owner_id,
            )
        else:
            purged = await self._purge_children(board.id)
            if purged:
                logger.warning(
                    "archival.restore.purged_live_children",
                    extra={"board_id": str(board.id), "rows": purged},
                )
        board.name = document.name
        board.description = document.description
        board.owner_id = document.owner_id
        board.created_at = document.created_at
        board.updated_at = document.updated_at
        board.is_archived = False
        board.archived_at = None
        crud.add(self.session, board)
        await self.session.flush()
        return board, created

    async def _recreate_states(self, document: BoardArchivalDocument) -> dict[int, int]:
        crud.add(
            self.session,
            *(
                State(
                    board_id=document.board_id,
                    name=snapshot.name,
                    order=snapshot.order,
                    created_at=snapshot.created_at,
                    updated_at=snapshot.updated_at,
                )
                for snapshot in document.states
            ),
        )
        await self.session.flush()
        persisted = await crud.find(self.session, State, col(State.board_id) == document.board_id)
        return build_state_id_map(document.states, persisted)

    async def _recreate_children(
        self,
        document: BoardArchivalDocument,
        state_id_map: dict[int, int],
    ) -> None:
        tasks = [
            Task(
                id=snapshot.id,
                board_id=document.board_id,
                title=snapshot.title,
                description=snapshot.description,
                state_id=resolve_state_id(
                    state_id_map,
                    snapshot.state_id,
                    policy=self.unmapped_state_policy,
                    board_id=document.board_id,
                    task_id=snapshot.id,
                ),
                assignee_id=snapshot.assignee_id,
                created_at=snapshot.created_at,
                updated_at=snapshot.updated_at,
                due_date=snapshot.due_date,
            )
            for snapshot in document.tasks
        ]
        crud.add(self.session, *tasks)
        await self.session.flush()

        crud.add(
            self.session,
            *(
                Comment(
                    id=comment.id,
                    task_id=task.id,
                    author_id=comment.author_id,
                    content=comment.content,
                    created_at=comment.created_at,
                    updated_at=comment.updated_at,
                )
                for task in document.tasks
                for comment in task.comments
            ),
            *(
                BoardMember(
                    board_id=document.board_id,
                    user_id=member.user_id,
                    role=member.role,
                    created_at=member.created_at,
                    updated_at=member.updated_at,
                )
                for member in document.members
            ),
        )

    async def _reclaim(self, board_id: UUID, blob_name: str) -> bool:
        try:
            await self.blobs.delete(blob_name)
        except Exception as exc:
            logger.warning(
                "archival.restore.reclaim_failed",
                extra={"board_id": str(board_id), "blob": blob_name, "error": str(exc)},
            )
            return False
        return True

    async def dearchive_board(
        self,
        board_id: UUID,
        *,
        board_name: str | None = None,
    ) -> RestoreResult:
        """Recreate the board's rows from its latest snapshot, then drop the snapshot."""
        with PhaseTracker(
            "dearchive",
            board_id,
            RestorePhase.LOCATED,
            board_name=board_name,
        ) as tracker:
            blob_name = await self.locate_latest_snapshot(board_id)

            tracker.advance(RestorePhase.DOWNLOADED)
            raw = await self.blobs.download(blob_name)

            tracker.advance(RestorePhase.DECODED)
            document = codec.loads(raw)
            if document.board_id != board_id:
                raise SnapshotMalformedError(
                    f"snapshot {blob_name} belongs to board {document.board_id}",
                    board_id=board_id,
                )

            tracker.advance(RestorePhase.BOARD_UPSERTED)
            _board, board_created = await self._upsert_board(document)

            tracker.advance(RestorePhase.STATES_REMAPPED)
            state_id_map = await self._recreate_states(document)

            tracker.advance(RestorePhase.CHILDREN_RECREATED)
            await self._recreate_children(document, state_id_map)

            tracker.advance(RestorePhase.COMMITTED)
            await crud.save(self.session)

            tracker.advance(RestorePhase.BLOB_RECLAIMED)
            reclaimed = await self._reclaim(board_id, blob_name)
            tracker.finish()

        logger.info(
            "archival.restore.completed",
            extra={
                "board_id": str(board_id),
                "blob": blob_name,
                "board_created": board_created,
                "states": len(state_id_map),
                "tasks": len(document.tasks),
                "comments": document.comment_count,
                "members": len(document.members),
                "blob_reclaimed": reclaimed,
            },
        )
        return RestoreResult(
            board_id=board_id,
            blob_name=blob_name,
            board_created=board_created,
            blob_reclaimed=reclaimed,
            state_id_map=state_id_map,
            task_count=len(document.tasks),
            comment_count=document.comment_count,
            member_count=len(document.members),
        )
