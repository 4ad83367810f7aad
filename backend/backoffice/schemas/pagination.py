"""Pagination utilities."""

from typing import Optional

from backoffice.core.config import settings


def paginate_query(query, skip: int = 0, limit: Optional[int] = None):
    """
    Apply pagination to a SQLAlchemy query.

    Args:
        query: SQLAlchemy query object
        skip: Number of items to skip
        limit: Maximum items to return, capped at ``settings.max_page_size``
            (``settings.default_page_size`` when omitted)

    Returns:
        Tuple of (paginated items, total count)
    """
    if limit is None:
        limit = settings.default_page_size
    limit = max(1, min(limit, settings.max_page_size))

    # Get total count (before pagination)
    total = query.order_by(None).count()

    # Apply pagination
    items = query.offset(max(skip, 0)).limit(limit).all()

    return items, total
