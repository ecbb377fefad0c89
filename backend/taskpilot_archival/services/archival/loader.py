"""Load a board and every row it owns as one in-memory aggregate."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlmodel import col, select

from taskpilot_archival.db import crud
from taskpilot_archival.models.board_members import BoardMember
from taskpilot_archival.models.boards import Board
from taskpilot_archival.models.comments import Comment
from taskpilot_archival.models.states import State
from taskpilot_archival.models.tasks import Task
from taskpilot_archival.services.archival.errors import BoardNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession


@dataclass
class BoardAggregate:
    """Point-in-time view of a board and its dependents."""

    board: Board
    states: list[State] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    members: list[BoardMember] = field(default_factory=list)

    def comments_by_task(self) -> dict[UUID, list[Comment]]:
        grouped: dict[UUID, list[Comment]] = defaultdict(list)
        for comment in self.comments:
            grouped[comment.task_id].append(comment)
        return grouped


async def load_board_aggregate(session: AsyncSession, board_id: UUID) -> BoardAggregate:
    """Read a board plus all states, tasks, comments, and members.

    Raises `BoardNotFoundError` when the board row is absent; otherwise the
    whole aggregate is returned, never a subset.
    """
    board = await crud.get_by_id(session, Board, board_id)
    if board is None:
        raise BoardNotFoundError(f"board {board_id} does not exist", board_id=board_id)

    states = await State.objects.filter_by(board_id=board_id).order_by(col(State.id)).all(session)
    tasks = await (
        Task.objects.filter_by(board_id=board_id)
        .order_by(col(Task.created_at), col(Task.id))
        .all(session)
    )
    comment_statement = (
        select(Comment)
        .join(Task, col(Task.id) == col(Comment.task_id))
        .where(col(Task.board_id) == board_id)
        .order_by(col(Comment.created_at), col(Comment.id))
    )
    comments = list(await session.exec(comment_statement))
    members = await crud.find(
        session,
        BoardMember,
        col(BoardMember.board_id) == board_id,
        order_by=(col(BoardMember.created_at), col(BoardMember.user_id)),
    )
    return BoardAggregate(
        board=board,
        states=states,
        tasks=tasks,
        comments=comments,
        members=members,
    )
