"""Page arithmetic shared by admin listings."""

from math import ceil

from app.schemas.admin import Pagination


def page_offset(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def build_pagination(page: int, page_size: int, total: int) -> Pagination:
    """Pagination metadata for a 1-based page over total rows."""
    total_pages = ceil(total / page_size) if page_size else 0
    return Pagination(
        current_page=page,
        total_pages=total_pages,
        total_count=total,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
