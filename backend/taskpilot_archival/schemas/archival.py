"""Snapshot document written to cold storage when a board is archived."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)
SNAPSHOT_FORMAT_VERSION = 1

# Every field below is declared without a default: a document missing a key
# fails validation instead of silently picking one up. Nullable fields must be
# present with an explicit `null`. Strict mode rejects coercions such as "7" or
# `true` for an int and epoch numbers for a timestamp.
_DOCUMENT_CONFIG = ConfigDict(extra="ignore", strict=True)


class CommentSnapshot(BaseModel):
    """Comment as captured under its task."""

    model_config = _DOCUMENT_CONFIG

    id: UUID
    author_id: UUID
    content: str
    created_at: datetime
    updated_at: datetime


class StateSnapshot(BaseModel):
    """State with the surrogate id it had when the snapshot was taken."""

    model_config = _DOCUMENT_CONFIG

    id: int
    name: str
    order: int
    created_at: datetime
    updated_at: datetime


class TaskSnapshot(BaseModel):
    """Task with its original state id and nested comments."""

    model_config = _DOCUMENT_CONFIG

    id: UUID
    title: str
    description: str | None
    state_id: int
    assignee_id: UUID | None
    created_at: datetime
    updated_at: datetime
    due_date: datetime | None
    comments: list[CommentSnapshot]


class BoardMemberSnapshot(BaseModel):
    """Membership row; the board id is implied by the enclosing document."""

    model_config = _DOCUMENT_CONFIG

    user_id: UUID
    role: str
    created_at: datetime
    updated_at: datetime


class BoardArchivalDocument(BaseModel):
    """Complete board aggregate: board fields, then states, tasks, members."""

    model_config = _DOCUMENT_CONFIG

    format_version: int = Field(ge=1)
    board_id: UUID
    name: str
    description: str | None
    owner_id: UUID
    created_at: datetime
    updated_at: datetime
    states: list[StateSnapshot]
    tasks: list[TaskSnapshot]
    members: list[BoardMemberSnapshot]

    @property
    def comment_count(self) -> int:
        return sum(len(task.comments) for task in self.tasks)
