"""Protocol, thread and review schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from protocol_forum.schemas.vote import VoteCounters, WireVote


class Tag(BaseModel):
    """Tag attached to a protocol."""

    id: int
    name: str

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class Protocol(BaseModel):
    """A shared procedure that threads and reviews attach to."""

    id: int
    title: str
    content: str = ""
    author: str = ""
    tags: list[Tag] = Field(default_factory=list)
    reviews_count: int = 0
    threads_count: int = 0
    reviews_avg_rating: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class Thread(BaseModel):
    """Discussion thread attached to a protocol."""

    id: int
    protocol_id: int | None = None
    title: str
    body: str = ""
    author: str = ""
    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)
    comments_count: int = 0
    user_vote: WireVote = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    @property
    def counters(self) -> VoteCounters:
        return VoteCounters(upvotes=self.upvotes, downvotes=self.downvotes)

    @property
    def vote_score(self) -> int:
        return self.counters.vote_score


class Review(BaseModel):
    """Rated review of a protocol; its votes read as helpful/not helpful."""

    id: int
    protocol_id: int
    rating: int = Field(..., ge=1, le=5)
    feedback: str = ""
    author: str = ""
    helpful_count: int = Field(default=0, ge=0)
    not_helpful_count: int = Field(default=0, ge=0)
    user_vote: WireVote = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    @property
    def counters(self) -> VoteCounters:
        return VoteCounters(upvotes=self.helpful_count, downvotes=self.not_helpful_count)
