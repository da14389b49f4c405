"""Shared Pydantic schemas for the upstream API envelope."""
from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

HTTP_OK = 200


class Pagination(BaseModel):
    """Pagination metadata attached to listing responses."""

    current_page: int = Field(default=1, ge=1)
    per_page: int = Field(default=10, ge=1)
    total: int = Field(default=0, ge=0)
    last_page: int = Field(default=1, ge=1)
    has_more_pages: bool = False


class Envelope(BaseModel, Generic[T]):
    """Response wrapper used by every upstream endpoint."""

    status_code: int
    message: str = ""
    data: T
    pagination: Pagination | None = None

    @property
    def ok(self) -> bool:
        return self.status_code == HTTP_OK


def next_page(pagination: Pagination | None) -> int | None:
    """Return the page to request next, or None once the listing is exhausted."""
    if pagination is None or not pagination.has_more_pages:
        return None
    return pagination.current_page + 1
