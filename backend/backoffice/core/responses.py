"""Standard result envelope for paginated list operations.

    {"items": [...], "total": <int>, "skip": <int>, "limit": <int>, "has_more": <bool>}

Single-item lookups return the object directly (no wrapper).
"""


def paginated_response(
    items: list,
    total: int,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    """Wrap a page of results in the standard envelope.

    Returns:
        {"items": items, "total": total, "skip": skip, "limit": limit, "has_more": bool}
    """
    return {
        "items": items,
        "total": total,
        "skip": skip,
        "limit": limit,
        "has_more": (skip + len(items)) < total,
    }
