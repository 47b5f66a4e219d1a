from typing import Optional
from pydantic import BaseModel

from constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


class Pagination(BaseModel):
    """Pagination block attached to list responses"""
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_previous: bool


def get_pagination_params(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    default_limit: int = DEFAULT_PAGE_SIZE,
) -> tuple[int, int, int]:
    """
    Get pagination parameters with defaults and validation.

    Args:
        page: Page number (1-indexed)
        limit: Number of items per page

    Returns:
        Tuple of (page, skip, limit) for MongoDB queries
    """
    page = page if page is not None and page > 0 else 1
    limit = limit if limit is not None and limit > 0 else default_limit
    limit = min(limit, MAX_PAGE_SIZE)

    skip = (page - 1) * limit

    return page, skip, limit


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    pages = (total + limit - 1) // limit if total > 0 else 0

    return Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=pages,
        has_next=page < pages,
        has_previous=page > 1,
    )
