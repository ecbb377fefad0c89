"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from taskpilot_archival.models.board_members import BoardMember
from taskpilot_archival.models.boards import Board
from taskpilot_archival.models.comments import Comment
from taskpilot_archival.models.states import State
from taskpilot_archival.models.tasks import Task
from taskpilot_archival.models.users import User

__all__ = [
    "Board",
    "BoardMember",
    "Comment",
    "State",
    "Task",
    "User",
]
