"""Task model representing board work items."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from taskpilot_archival.core.time import utcnow
from taskpilot_archival.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Task(QueryModel, table=True):
    """Board-scoped task placed in exactly one state of the same board."""

    __tablename__ = "tasks"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    board_id: UUID = Field(foreign_key="boards.id", index=True)

    title: str
    description: str | None = None
    state_id: int = Field(foreign_key="states.id", index=True)
    assignee_id: UUID | None = Field(default=None, foreign_key="users.id", index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    due_date: datetime | None = None
