"""Search and type-ahead suggestion schemas."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from protocol_forum.schemas.common import Pagination
from protocol_forum.schemas.protocol import Protocol, Tag, Thread

T = TypeVar("T")


class ResultPage(BaseModel, Generic[T]):
    """One page of an independently paginated result collection."""

    items: list[T] = Field(default_factory=list)
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=10, ge=1)
    total: int = Field(default=0, ge=0)
    total_pages: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @classmethod
    def from_listing(cls, items: list[T], pagination: Pagination | None) -> ResultPage[T]:
        """Build a page from listing items and the envelope's pagination block."""
        if pagination is None:
            return cls(items=items, page=1, per_page=max(len(items), 1),
                       total=len(items), total_pages=1 if items else 0)
        return cls(
            items=items,
            page=pagination.current_page,
            per_page=pagination.per_page,
            total=pagination.total,
            total_pages=pagination.last_page if pagination.total else 0,
        )


class SearchResult(BaseModel):
    """Merged search response over protocols and threads."""

    query: str
    protocols: ResultPage[Protocol] = Field(default_factory=ResultPage[Protocol])
    threads: ResultPage[Thread] = Field(default_factory=ResultPage[Thread])
    grand_total: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def is_empty(self) -> bool:
        return self.grand_total == 0


class Suggestions(BaseModel):
    """Unpaginated, upstream-capped type-ahead results."""

    protocols: list[Protocol] = Field(default_factory=list)
    threads: list[Thread] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
