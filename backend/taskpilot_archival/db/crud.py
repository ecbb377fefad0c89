"""Generic persistence helpers shared by every model type.

These functions are the per-entity repository capability: fetch by id,
fetch by predicate, add, remove, and save. None of them commit unless asked
to, so a pipeline can stage many changes and commit them once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import delete
from sqlmodel import SQLModel, select

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlmodel.ext.asyncio.session import AsyncSession

ModelT = TypeVar("ModelT", bound=SQLModel)


async def get_by_id(session: AsyncSession, model: type[ModelT], obj_id: Any) -> ModelT | None:
    """Fetch one row by primary key (a tuple for composite keys)."""
    return await session.get(model, obj_id)


async def find(
    session: AsyncSession,
    model: type[ModelT],
    *criteria: Any,
    order_by: Iterable[Any] = (),
) -> list[ModelT]:
    """Fetch every row of `model` matching all `criteria`."""
    statement = select(model)
    if criteria:
        statement = statement.where(*criteria)
    order = tuple(order_by)
    if order:
        statement = statement.order_by(*order)
    return list(await session.exec(statement))


def add(session: AsyncSession, *objs: SQLModel) -> None:
    """Stage new or modified rows on the session."""
    session.add_all(objs)


async def remove(session: AsyncSession, *objs: SQLModel) -> None:
    """Stage loaded rows for deletion."""
    for obj in objs:
        await session.delete(obj)


async def delete_where(
    session: AsyncSession,
    model: type[SQLModel],
    *criteria: Any,
    commit: bool = False,
) -> int:
    """Bulk-delete rows matching `criteria`; returns the affected row count."""
    statement: Any = delete(model)
    if criteria:
        statement = statement.where(*criteria)
    result = await session.exec(statement)
    if commit:
        await session.commit()
    return int(getattr(result, "rowcount", 0) or 0)


async def save(session: AsyncSession) -> None:
    """Flush every pending change and commit the unit of work once."""
    await session.flush()
    await session.commit()
