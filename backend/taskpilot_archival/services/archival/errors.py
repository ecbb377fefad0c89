"""Failure taxonomy for archive/dearchive pipelines."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from uuid import UUID


class ArchivalError(Exception):
    """Base class for every failure surfaced by the archival engines."""

    retryable: ClassVar[bool] = False

    def __init__(self, message: str, *, board_id: UUID | None = None) -> None:
        super().__init__(message)
        self.board_id = board_id


class BoardNotFoundError(ArchivalError):
    """The board to archive does not exist."""


class SnapshotNotFoundError(ArchivalError):
    """No archival snapshot exists for the board being restored."""


class SnapshotMalformedError(ArchivalError):
    """A downloaded snapshot cannot be decoded into the expected document."""


class UnmappedStateError(SnapshotMalformedError):
    """A snapshotted task points at a state the restore could not recreate."""

    def __init__(self, message: str, *, board_id: UUID | None = None, state_id: int) -> None:
        super().__init__(message, board_id=board_id)
        self.state_id = state_id


class StoreFailureError(ArchivalError):
    """The relational or blob store was unreachable or rejected an operation."""

    retryable = True


class BlobNotFoundError(StoreFailureError):
    """The named blob does not exist."""

    retryable = False


class BoardLockedError(ArchivalError):
    """Another archive/dearchive pipeline currently holds the board."""

    retryable = True
