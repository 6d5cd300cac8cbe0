"""Shared response schemas."""

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from songstock.domain.value_objects import Page

ItemT = TypeVar("ItemT", bound=BaseModel)


class PageResponse(BaseModel, Generic[ItemT]):
    """One page of results: ``{"items", "total", "page", "size", "total_pages"}``."""

    items: list[ItemT]
    total: int = Field(ge=0)
    page: int = Field(ge=0, description="0-based page index")
    size: int = Field(ge=1)
    total_pages: int = Field(ge=0)

    @classmethod
    def from_page(
        cls, page: Page[Any], convert: Callable[[Any], ItemT]
    ) -> "PageResponse[ItemT]":
        return cls(
            items=[convert(item) for item in page.items],
            total=page.total,
            page=page.page,
            size=page.size,
            total_pages=page.total_pages,
        )


class MessageResponse(BaseModel):
    message: str
