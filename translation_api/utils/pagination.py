"""
Pagination Utilities

Offset pagination with a total count, shaped like a classic paginator:
``{data, current_page, last_page, per_page, total}``.
"""

import math
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel

from translation_api.config import settings

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of query results plus the numbers needed to navigate."""

    data: list[T] = field(default_factory=list)
    current_page: int = 1
    per_page: int = 20
    total: int = 0

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def offset(self) -> int:
        return (self.current_page - 1) * self.per_page


class PageResponse(BaseModel, Generic[T]):
    """Serialized form of ``Page``."""

    data: list[T]
    current_page: int
    last_page: int
    per_page: int
    total: int

    @classmethod
    def from_page(cls, page: Page, item_factory=None) -> "PageResponse":
        items = [item_factory(item) for item in page.data] if item_factory else list(page.data)
        return cls(
            data=items,
            current_page=page.current_page,
            last_page=page.last_page,
            per_page=page.per_page,
            total=page.total,
        )


class PaginationParams:
    """
    FastAPI dependency for page/per_page query parameters.

    Usage:
        @router.get("/items")
        async def list_items(pagination: PaginationParams = Depends()):
            ...
    """

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-based)"),
        per_page: int = Query(default=settings.default_per_page, ge=1, le=settings.max_per_page, description="Number of items per page"),
    ):
        self.page = page
        self.per_page = per_page
