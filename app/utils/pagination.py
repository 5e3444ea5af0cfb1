from typing import Any, Sequence


def paginate(
    *,
    items: Sequence[Any],
    page: int = 1,
    limit: int = 10,
):
    if page < 1:
        page = 1

    if limit < 1:
        limit = 10

    offset = (page - 1) * limit
    total = len(items)

    return {
        "total_items": total,
        "total_pages": (total + limit - 1) // limit,
        "current_page": page,
        "limit": limit,
        "results": list(items[offset:offset + limit]),
    }
