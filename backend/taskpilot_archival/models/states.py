"""Workflow state (board column) model keyed by a store-assigned integer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from taskpilot_archival.core.time import utcnow
from taskpilot_archival.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class State(QueryModel, table=True):
    """Board column; `id` is a surrogate key and changes when a board is restored."""

    __tablename__ = "states"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint("board_id", "name", name="uq_states_board_name"),
        UniqueConstraint("board_id", "order", name="uq_states_board_order"),
    )

    id: int | None = Field(default=None, primary_key=True)
    board_id: UUID = Field(foreign_key="boards.id", index=True)
    name: str
    order: int
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
