"""Pipeline phases and the tracker that logs transitions and failures."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from taskpilot_archival.core.logging import TRACE_LEVEL, get_logger

if TYPE_CHECKING:
    from types import TracebackType
    from uuid import UUID

logger = get_logger(__name__)


class ArchivePhase(StrEnum):
    LOADED = "loaded"
    ENCODED = "encoded"
    UPLOADED = "uploaded"
    MARKED = "marked"
    CHILDREN_DELETED = "children_deleted"
    COMMITTED = "committed"


class RestorePhase(StrEnum):
    LOCATED = "located"
    DOWNLOADED = "downloaded"
    DECODED = "decoded"
    BOARD_UPSERTED = "board_upserted"
    STATES_REMAPPED = "states_remapped"
    CHILDREN_RECREATED = "children_recreated"
    COMMITTED = "committed"
    BLOB_RECLAIMED = "blob_reclaimed"


PhaseT = TypeVar("PhaseT", ArchivePhase, RestorePhase)


class PhaseTracker(Generic[PhaseT]):
    """Record which phase a pipeline is working towards.

    `phase` names the step currently executing (the state the pipeline will
    be in once it succeeds). On exit with an exception the failure is logged
    with that phase and the exception propagates unchanged.
    """

    def __init__(self, operation: str, board_id: UUID, first: PhaseT, **context: Any) -> None:
        self.operation = operation
        self.board_id = board_id
        self.phase: PhaseT = first
        self.completed: list[PhaseT] = []
        self.context = context

    def _extra(self, **more: Any) -> dict[str, Any]:
        return {"board_id": str(self.board_id), "phase": self.phase.value, **self.context, **more}

    def advance(self, next_phase: PhaseT) -> None:
        """Mark the current phase done and start working towards `next_phase`."""
        self.completed.append(self.phase)
        logger.log(TRACE_LEVEL, f"archival.{self.operation}.phase_done", extra=self._extra())
        self.phase = next_phase

    def finish(self) -> None:
        self.completed.append(self.phase)
        logger.log(TRACE_LEVEL, f"archival.{self.operation}.phase_done", extra=self._extra())

    def __enter__(self) -> PhaseTracker[PhaseT]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is None:
            return False
        if isinstance(exc, asyncio.CancelledError):
            logger.warning(f"archival.{self.operation}.cancelled", extra=self._extra())
            return False
        logger.error(
            f"archival.{self.operation}.failed",
            extra=self._extra(error_type=type(exc).__name__, error=str(exc)),
            exc_info=(exc_type, exc, tb) if exc_type is not None else None,
        )
        return False
