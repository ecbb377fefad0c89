"""Shared SQLModel base class for table models."""

from __future__ import annotations

from typing import ClassVar

from sqlmodel import SQLModel

from taskpilot_archival.db.query_manager import ManagerDescriptor


class QueryModel(SQLModel, table=False):
    """Base for tables that expose `Model.objects` query sets."""

    objects: ClassVar[ManagerDescriptor] = ManagerDescriptor()
