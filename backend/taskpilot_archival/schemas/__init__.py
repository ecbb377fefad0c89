"""Public schema exports shared across API route modules."""

from taskpilot_archival.schemas.archival import BoardArchivalDocument
from taskpilot_archival.schemas.archival_jobs import (
    ArchivalJob,
    ArchivalJobCreate,
    ArchivalJobRead,
    ArchivalJobStatus,
    ArchivalJobType,
)
from taskpilot_archival.schemas.health import HealthStatusResponse

__all__ = [
    "ArchivalJob",
    "ArchivalJobCreate",
    "ArchivalJobRead",
    "ArchivalJobStatus",
    "ArchivalJobType",
    "BoardArchivalDocument",
    "HealthStatusResponse",
]
