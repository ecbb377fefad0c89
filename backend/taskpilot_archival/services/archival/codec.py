"""Map board aggregates to snapshot documents and documents to bytes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from taskpilot_archival.schemas.archival import (
    SNAPSHOT_FORMAT_VERSION,
    BoardArchivalDocument,
    BoardMemberSnapshot,
    CommentSnapshot,
    StateSnapshot,
    TaskSnapshot,
)
from taskpilot_archival.services.archival.errors import SnapshotMalformedError

if TYPE_CHECKING:
    from taskpilot_archival.models.comments import Comment
    from taskpilot_archival.models.states import State
    from taskpilot_archival.services.archival.loader import BoardAggregate

SNAPSHOT_CONTENT_TYPE = "application/json"
SNAPSHOT_EXTENSION = "json"


def _state_snapshot(state: State) -> StateSnapshot:
    if state.id is None:
        raise ValueError(f"state {state.name!r} has no persisted id")
    return StateSnapshot(
        id=state.id,
        name=state.name,
        order=state.order,
        created_at=state.created_at,
        updated_at=state.updated_at,
    )


def _comment_snapshot(comment: Comment) -> CommentSnapshot:
    return CommentSnapshot(
        id=comment.id,
        author_id=comment.author_id,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


def encode_aggregate(aggregate: BoardAggregate) -> BoardArchivalDocument:
    """Project a loaded aggregate into its snapshot document."""
    board = aggregate.board
    comments_by_task = aggregate.comments_by_task()
    return BoardArchivalDocument(
        format_version=SNAPSHOT_FORMAT_VERSION,
        board_id=board.id,
        name=board.name,
        description=board.description,
        owner_id=board.owner_id,
        created_at=board.created_at,
        updated_at=board.updated_at,
        states=[_state_snapshot(state) for state in aggregate.states],
        tasks=[
            TaskSnapshot(
                id=task.id,
                title=task.title,
                description=task.description,
                state_id=task.state_id,
                assignee_id=task.assignee_id,
                created_at=task.created_at,
                updated_at=task.updated_at,
                due_date=task.due_date,
                comments=[_comment_snapshot(c) for c in comments_by_task.get(task.id, [])],
            )
            for task in aggregate.tasks
        ],
        members=[
            BoardMemberSnapshot(
                user_id=member.user_id,
                role=member.role,
                created_at=member.created_at,
                updated_at=member.updated_at,
            )
            for member in aggregate.members
        ],
    )


def dumps(document: BoardArchivalDocument) -> bytes:
    """Serialize a document as indented UTF-8 JSON."""
    return document.model_dump_json(indent=2).encode("utf-8")


def loads(raw: bytes) -> BoardArchivalDocument:
    """Decode snapshot bytes, raising `SnapshotMalformedError` on any shape problem."""
    try:
        document = BoardArchivalDocument.model_validate_json(raw)
    except ValidationError as exc:
        raise SnapshotMalformedError(
            f"snapshot failed validation: {exc.error_count()} error(s): {exc}",
        ) from exc
    if document.format_version > SNAPSHOT_FORMAT_VERSION:
        raise SnapshotMalformedError(
            f"snapshot format_version {document.format_version} is newer than "
            f"supported version {SNAPSHOT_FORMAT_VERSION}",
            board_id=document.board_id,
        )
    return document
