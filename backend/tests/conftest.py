# ruff: noqa: INP001
"""Pytest configuration shared across backend tests."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Deterministic import-time settings regardless of shell env.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DB_AUTO_MIGRATE"] = "false"
os.environ["BLOB_ARCHIVE_PREFIX"] = "archivals"

from sqlalchemy.ext.asyncio import async_sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from taskpilot_archival.db.session import build_engine  # noqa: E402
from taskpilot_archival.models import Board, BoardMember, Comment, State, Task, User  # noqa: E402
from taskpilot_archival.services.archival.errors import (  # noqa: E402
    BlobNotFoundError,
    StoreFailureError,
)
from taskpilot_archival.services.blob_storage import BlobFileMetadata  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

BASE_TIME = datetime(2026, 3, 2, 9, 30, 15, 123456)


class FakeBlobStorage:
    """In-memory blob store; operations listed in `fail_on` raise StoreFailureError."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_on: set[str] = set()
        self.deleted: list[str] = []

    async def __aenter__(self) -> FakeBlobStorage:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        return None

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreFailureError(f"injected {operation} failure")

    async def upload(self, name: str, data: bytes, content_type: str) -> None:
        self._maybe_fail("upload")
        self.objects[name] = (data, content_type)

    async def download(self, name: str) -> bytes:
        self._maybe_fail("download")
        if name not in self.objects:
            raise BlobNotFoundError(f"blob {name!r} does not exist")
        return self.objects[name][0]

    async def list(self, prefix: str) -> list[str]:
        self._maybe_fail("list")
        return sorted(name for name in self.objects if name.startswith(prefix))

    async def delete(self, name: str) -> None:
        self._maybe_fail("delete")
        self.objects.pop(name, None)
        self.deleted.append(name)

    async def exists(self, name: str) -> bool:
        return name in self.objects

    async def list_with_metadata(self, prefix: str) -> list[BlobFileMetadata]:
        return [
            BlobFileMetadata(
                name=name, size=len(data), content_type=content_type, last_modified=None
            )
            for name, (data, content_type) in sorted(self.objects.items())
            if name.startswith(prefix)
        ]

    async def metadata(self, name: str) -> None:
        return None

    async def presigned_url(
        self, name: str, *, expires_in: int = 3600, method: str = "get_object"
    ) -> str:
        return f"memory://{name}?method={method}&expires_in={expires_in}"


@dataclass
class SeededBoard:
    board_id: UUID
    owner_id: UUID
    member_id: UUID
    task_id: UUID
    comment_id: UUID
    state_ids: dict[str, int] = field(default_factory=dict)


async def seed_sprint_board(session: AsyncSession, *, name: str = "Sprint 1") -> SeededBoard:
    """Board with states Todo/0 and Done/1, one task in Todo, one comment, one member."""
    owner = User(id=uuid4(), username=f"owner-{uuid4().hex[:6]}", email="owner@example.com")
    member = User(id=uuid4(), username=f"member-{uuid4().hex[:6]}", email="member@example.com")
    session.add_all([owner, member])
    await session.flush()

    board = Board(
        id=uuid4(),
        name=name,
        description="Two week sprint",
        owner_id=owner.id,
        created_at=BASE_TIME,
        updated_at=BASE_TIME + timedelta(hours=1),
    )
    session.add(board)
    await session.flush()

    todo = State(
        board_id=board.id,
        name="Todo",
        order=0,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )
    done = State(
        board_id=board.id,
        name="Done",
        order=1,
        created_at=BASE_TIME + timedelta(seconds=1),
        updated_at=BASE_TIME + timedelta(seconds=1),
    )
    session.add_all([todo, done])
    await session.flush()
    assert todo.id is not None
    assert done.id is not None

    task = Task(
        id=uuid4(),
        board_id=board.id,
        title="Write release notes",
        description="Cover the archive feature",
        state_id=todo.id,
        assignee_id=member.id,
        created_at=BASE_TIME + timedelta(minutes=5),
        updated_at=BASE_TIME + timedelta(minutes=6),
        due_date=BASE_TIME + timedelta(days=7),
    )
    session.add(task)
    await session.flush()

    comment = Comment(
        id=uuid4(),
        task_id=task.id,
        author_id=owner.id,
        content="Draft is in the shared folder",
        created_at=BASE_TIME + timedelta(minutes=10),
        updated_at=BASE_TIME + timedelta(minutes=10),
    )
    membership = BoardMember(
        board_id=board.id,
        user_id=member.id,
        role="editor",
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )
    session.add_all([comment, membership])
    await session.commit()
    return SeededBoard(
        board_id=board.id,
        owner_id=owner.id,
        member_id=member.id,
        task_id=task.id,
        comment_id=comment.id,
        state_ids={"Todo": todo.id, "Done": done.id},
    )


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def blobs() -> FakeBlobStorage:
    return FakeBlobStorage()


@pytest.fixture
def seed_board(
    session_maker: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[SeededBoard]]:
    async def _seed(*, name: str = "Sprint 1") -> SeededBoard:
        async with session_maker() as session:
            return await seed_sprint_board(session, name=name)

    return _seed
