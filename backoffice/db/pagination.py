"""Offset pagination for ORM queries."""

from typing import Any, List, Tuple

from sqlalchemy.orm import Query


def paginate(query: Query, page: int, limit: int) -> Tuple[List[Any], int]:
    """Return one page of ``query`` and the unpaginated row count.

    The query must already carry its ordering.
    """
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total
