from __future__ import annotations

import math
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelInput(BaseModel):
    """Request bodies accept ``camelCase`` and ``snake_case`` keys alike."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"


class Envelope(BaseModel, Generic[T]):
    data: T
    message: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class PaginatedEnvelope(BaseModel, Generic[T]):
    data: List[T]
    pagination: Pagination
    message: Optional[str] = None
