"""Time helpers shared by models, snapshots, and job tracking."""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return a naive UTC timestamp, matching how rows are stored."""
    return datetime.now(UTC).replace(tzinfo=None)
