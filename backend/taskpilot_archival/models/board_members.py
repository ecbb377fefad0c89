"""Board membership model keyed by (board, user)."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import Field

from taskpilot_archival.core.time import utcnow
from taskpilot_archival.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class BoardMember(QueryModel, table=True):
    """Membership row granting a user a role on a board."""

    __tablename__ = "board_members"  # pyright: ignore[reportAssignmentType]

    board_id: UUID = Field(foreign_key="boards.id", primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(default="member")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
