"""Translate snapshotted state ids into the ids assigned on restore.

State ids are store-assigned surrogate keys, so recreated rows get fresh
values. Rows are matched back to their snapshot by (name, order, created_at,
updated_at), which is unique within a board because name and order each are.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from taskpilot_archival.core.logging import get_logger
from taskpilot_archival.services.archival.errors import UnmappedStateError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

    from taskpilot_archival.models.states import State
    from taskpilot_archival.schemas.archival import StateSnapshot

logger = get_logger(__name__)
UnmappedStatePolicy = Literal["fail", "fallback"]
StateKey = tuple[str, int, "datetime", "datetime"]


def state_key(name: str, order: int, created_at: datetime, updated_at: datetime) -> StateKey:
    return (name, order, created_at, updated_at)


def build_state_id_map(
    snapshots: Iterable[StateSnapshot],
    persisted: Iterable[State],
) -> dict[int, int]:
    """Map each snapshot's original id to the id of the matching persisted row.

    Snapshots with no matching row are left out of the map.
    """
    new_ids: dict[StateKey, int] = {}
    for state in persisted:
        if state.id is None:
            continue
        new_ids[state_key(state.name, state.order, state.created_at, state.updated_at)] = state.id

    id_map: dict[int, int] = {}
    for snapshot in snapshots:
        new_id = new_ids.get(
            state_key(snapshot.name, snapshot.order, snapshot.created_at, snapshot.updated_at),
        )
        if new_id is not None:
            id_map[snapshot.id] = new_id
    return id_map


def resolve_state_id(
    id_map: dict[int, int],
    original_id: int,
    *,
    policy: UnmappedStatePolicy,
    board_id: UUID | None = None,
    task_id: UUID | None = None,
) -> int:
    """Return the restored id for `original_id`.

    Under the `fallback` policy an unmapped id is returned unchanged, which
    leaves the task pointing at a state that was not recreated for this board.
    """
    new_id = id_map.get(original_id)
    if new_id is not None:
        return new_id
    if policy == "fallback":
        logger.warning(
            "archival.restore.state_unmapped_fallback",
            extra={
                "board_id": str(board_id),
                "task_id": str(task_id),
                "original_state_id": original_id,
            },
        )
        return original_id
    raise UnmappedStateError(
        f"task {task_id} references state {original_id}, which is not in the snapshot",
        board_id=board_id,
        state_id=original_id,
    )
