"""
Pagination Utility Module

Standard page/limit handling shared by the list endpoints.
"""
from typing import Any, List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.schemas.common import PaginationMeta

MAX_PAGE_SIZE = 100


def build_pagination(page: int, page_size: int, total: int) -> PaginationMeta:
    total_pages = (total + page_size - 1) // page_size if total > 0 else 0
    return PaginationMeta(
        current_page=page,
        page_size=page_size,
        total_pages=total_pages,
        total_records=total,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: int = 10,
    count_query: Optional[Select] = None
) -> dict:
    """
    Apply pagination to a SQLAlchemy query.

    Args:
        db: Database session
        query: Base SQLAlchemy query (already filtered and ordered)
        page: Page number (1-indexed)
        page_size: Items per page, capped at MAX_PAGE_SIZE
        count_query: Optional custom count query

    Returns:
        Dictionary with `items` (ORM objects) and `pagination` (PaginationMeta)
    """
    page = max(1, page)
    page_size = max(1, min(MAX_PAGE_SIZE, page_size))

    offset = (page - 1) * page_size

    if count_query is None:
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(query.offset(offset).limit(page_size))
    items: List[Any] = list(result.scalars().all())

    return {
        "items": items,
        "pagination": build_pagination(page, page_size, total),
    }
