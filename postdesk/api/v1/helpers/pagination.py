"""
Page-number pagination for list endpoints.
"""

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from fastapi import Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from postdesk.config import settings
from postdesk.models.pydantic_models.core_models import PageModel


@dataclass(frozen=True)
class Pagination:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def get_pagination(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    per_page: int | None = Query(
        None, ge=1, le=settings.max_per_page, description="Items per page"
    ),
) -> Pagination:
    return Pagination(page=page, per_page=per_page or settings.default_per_page)


async def paginate(
    db: AsyncSession,
    stmt,
    pagination: Pagination,
    to_model: Callable[[Any], Any],
    options: Sequence[Any] = (),
) -> PageModel:
    """Run ``stmt`` for one page and count the full result set.

    Loader ``options`` are applied to the page query only.
    """
    total = await db.scalar(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )
    page_stmt = stmt.limit(pagination.per_page).offset(pagination.offset)
    if options:
        page_stmt = page_stmt.options(*options)
    result = await db.execute(page_stmt)
    rows = result.scalars().all()
    total = total or 0
    return PageModel(
        items=[to_model(row) for row in rows],
        total_count=total,
        page=pagination.page,
        per_page=pagination.per_page,
        last_page=max(1, math.ceil(total / pagination.per_page)),
    )
