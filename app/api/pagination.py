"""
Revi Audit — Shared list-endpoint helpers.

Every collection endpoint returns ``{items, pagination}``; the total is
counted over the filtered statement before ``LIMIT/OFFSET`` is applied.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.common import SortOrder

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class PageParams:
    page: int
    limit: int
    sort_order: SortOrder

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
) -> PageParams:
    return PageParams(page=page, limit=limit, sort_order=sort_order)


def pagination_meta(page: int, limit: int, total_count: int) -> dict[str, Any]:
    total_pages = math.ceil(total_count / limit) if total_count else 0
    return {
        "page": page,
        "limit": limit,
        "total_count": total_count,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


async def paginate(
    db: AsyncSession,
    stmt: Select,
    params: PageParams,
    *order_columns: Any,
) -> dict[str, Any]:
    """Run ``stmt`` for one page, sorted by ``order_columns`` in the requested direction."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total_count = (await db.execute(count_stmt)).scalar_one()

    if params.sort_order == "asc":
        ordering = [col.asc() for col in order_columns]
    else:
        ordering = [col.desc() for col in order_columns]
    page_stmt = stmt.order_by(*ordering).limit(params.limit).offset(params.offset)
    items = list((await db.execute(page_stmt)).scalars().all())

    return {
        "items": items,
        "pagination": pagination_meta(params.page, params.limit, total_count),
    }
