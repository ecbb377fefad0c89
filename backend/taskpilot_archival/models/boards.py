"""Board model, the root of the archivable aggregate."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from taskpilot_archival.core.time import utcnow
from taskpilot_archival.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Board(QueryModel, table=True):
    """Board row; survives archival with `is_archived` set while its children are removed."""

    __tablename__ = "boards"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    description: str | None = None
    owner_id: UUID = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    is_archived: bool = Field(default=False, index=True)
    archived_at: datetime | None = None
