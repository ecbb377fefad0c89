# ruff: noqa: INP001
"""`Model.objects` query sets and generic crud helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
from sqlmodel import col

from taskpilot_archival.db import crud
from taskpilot_archival.models import Board, BoardMember, State

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import async_sessionmaker
    from sqlmodel.ext.asyncio.session import AsyncSession

    from conftest import SeededBoard


@pytest.mark.asyncio
async def test_objects_by_id_and_filters(
    session_maker: async_sessionmaker[AsyncSession],
    seed_board: Callable[..., Awaitable[SeededBoard]],
) -> None:
    seeded = await seed_board()

    async with session_maker() as session:
        board = await Board.objects.by_id(seeded.board_id).first(session)
        missing = await Board.objects.by_id(uuid4()).first(session)
        states = await (
            State.objects.filter(col(State.board_id) == seeded.board_id)
            .order_by(col(State.order).desc())
            .all(session)
        )

    assert board is not None
    assert board.name == "Sprint 1"
    assert missing is None
    assert [s.name for s in states] == ["Done", "Todo"]


def test_by_id_rejects_composite_keys() -> None:
    with pytest.raises(TypeError, match="composite"):
        BoardMember.objects.by_id(uuid4())


@pytest.mark.asyncio
async def test_delete_where_reports_rowcount_and_defers_commit(
    session_maker: async_sessionmaker[AsyncSession],
    seed_board: Callable[..., Awaitable[SeededBoard]],
) -> None:
    seeded = await seed_board()

    async with session_maker() as session:
        deleted = await crud.delete_where(
            session, BoardMember, col(BoardMember.board_id) == seeded.board_id
        )
        assert deleted == 1
        await session.rollback()

    async with session_maker() as session:
        remaining = await crud.find(
            session, BoardMember, col(BoardMember.board_id) == seeded.board_id
        )
    assert len(remaining) == 1
