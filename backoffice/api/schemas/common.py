"""Common schemas for the back-office API."""

import math
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationParams(BaseModel):
    """Pagination parameters."""
    page: int = Field(1, ge=1, description="Page number")
    limit: int = Field(20, ge=1, le=100, description="Items per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next: bool
    has_prev: bool

    @classmethod
    def create(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total,
            limit=limit,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class Envelope(BaseModel):
    """Standard response body."""
    success: bool = True
    message: str
    data: Optional[Any] = None


def ok(data: Any = None, message: str = "OK") -> dict:
    """Success envelope; models inside ``data`` are rendered with their aliases."""
    return {"success": True, "message": message, "data": jsonable_encoder(data)}


def paginated(key: str, items: list, page: int, limit: int, total: int) -> dict:
    return {key: items, "pagination": Pagination.create(page, limit, total)}
