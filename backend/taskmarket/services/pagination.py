"""Offset pagination with look-ahead: fetch one extra row to learn whether more exist."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@dataclass
class PageResult(Generic[T]):
    items: list[T]
    has_more: bool
    total: int
    page: int
    page_size: int


async def fetch_page(session: AsyncSession, stmt: Select, page: int, page_size: int) -> PageResult[Any]:
    """Run ``stmt`` for one page. Rows are returned as ``Row`` objects."""
    page = max(page, 1)
    offset = (page - 1) * page_size

    total = await session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    res = await session.execute(stmt.limit(page_size + 1).offset(offset))
    rows = list(res.all())
    has_more = len(rows) > page_size
    if has_more:
        rows = rows[:page_size]
    return PageResult(items=rows, has_more=has_more, total=total or 0, page=page, page_size=page_size)
