"""Comment model attached to a task."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from taskpilot_archival.core.time import utcnow
from taskpilot_archival.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Comment(QueryModel, table=True):
    """Task comment; belongs to a board only through its task."""

    __tablename__ = "comments"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", index=True)
    author_id: UUID = Field(foreign_key="users.id", index=True)
    content: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
