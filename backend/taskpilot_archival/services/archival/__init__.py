"""Board archive/dearchive engines."""

from taskpilot_archival.services.archival.archive import ArchiveResult, BoardArchivalService
from taskpilot_archival.services.archival.errors import (
    ArchivalError,
    BlobNotFoundError,
    BoardLockedError,
    BoardNotFoundError,
    SnapshotMalformedError,
    SnapshotNotFoundError,
    StoreFailureError,
    UnmappedStateError,
)
from taskpilot_archival.services.archival.restore import BoardDearchivalService, RestoreResult

__all__ = [
    "ArchivalError",
    "ArchiveResult",
    "BlobNotFoundError",
    "BoardArchivalService",
    "BoardDearchivalService",
    "BoardLockedError",
    "BoardNotFoundError",
    "RestoreResult",
    "SnapshotMalformedError",
    "SnapshotNotFoundError",
    "StoreFailureError",
    "UnmappedStateError",
]
