"""Snapshot blob naming and latest-snapshot selection.

Names look like `archivals/{board_id}_{YYYYmmddHHMMSSffffff}.json`. The
timestamp suffix is fixed width, so for one board the lexicographic order of
names is the chronological order of archive events and the newest snapshot
can be found from a listing alone.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from taskpilot_archival.services.archival.codec import SNAPSHOT_EXTENSION

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

SNAPSHOT_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S%f"
_TIMESTAMP_WIDTH = 20


def snapshot_prefix(archive_prefix: str, board_id: UUID) -> str:
    """Listing prefix covering every snapshot of one board."""
    return f"{archive_prefix}/{board_id}_"


def snapshot_blob_name(archive_prefix: str, board_id: UUID, taken_at: datetime) -> str:
    """Blob name for a snapshot of `board_id` taken at `taken_at` (UTC)."""
    stamp = taken_at.strftime(SNAPSHOT_TIMESTAMP_FORMAT)
    return f"{snapshot_prefix(archive_prefix, board_id)}{stamp}.{SNAPSHOT_EXTENSION}"


def _snapshot_pattern(archive_prefix: str, board_id: UUID) -> re.Pattern[str]:
    return re.compile(
        re.escape(snapshot_prefix(archive_prefix, board_id))
        + rf"\d{{{_TIMESTAMP_WIDTH}}}\."
        + re.escape(SNAPSHOT_EXTENSION)
        + "$",
    )


def select_latest_snapshot(
    names: Iterable[str],
    *,
    archive_prefix: str,
    board_id: UUID,
) -> str | None:
    """Return the newest snapshot name for the board, ignoring unrelated blobs."""
    pattern = _snapshot_pattern(archive_prefix, board_id)
    candidates = [name for name in names if pattern.match(name)]
    if not candidates:
        return None
    return max(candidates)
