"""
Pagination request and response models.
"""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from jobportal.utils.constants import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT

T = TypeVar("T")


class PageParams(BaseModel):
    """1-based page number and page size."""

    page: int = Field(DEFAULT_PAGE, ge=1)
    limit: int = Field(DEFAULT_PAGE_LIMIT, ge=1)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class Page(BaseModel, Generic[T]):
    """One page of results plus the total match count."""

    items: list[T] = Field(default_factory=list)
    total: int = 0
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_PAGE_LIMIT
    pages: int = 0

    @classmethod
    def build(cls, items: list[T], total: int, params: PageParams) -> "Page[T]":
        return cls(
            items=items,
            total=total,
            page=params.page,
            limit=params.limit,
            pages=math.ceil(total / params.limit),
        )
