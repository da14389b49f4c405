"""Comment and reply schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from protocol_forum.schemas.vote import VoteCounters, WireVote

SNIPPET_LENGTH = 80


class ReplyingTo(BaseModel):
    """Non-owning back-reference used for the "replying to X" attribution line."""

    id: int | None = None
    author: str
    snippet: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @classmethod
    def from_wire(cls, value: object) -> object:
        if isinstance(value, str):
            return {"author": value}
        if isinstance(value, dict) and "snippet" not in value and "body" in value:
            value = {**value, "snippet": str(value["body"])[:SNIPPET_LENGTH]}
        return value


class Reply(BaseModel):
    """Reply under a comment, or a nested reply under another reply."""

    id: int
    body: str
    author: str = ""
    replying_to: ReplyingTo | None = None
    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)
    user_vote: WireVote = None
    nested_replies_count: int = Field(default=0, ge=0)
    nested_replies: list[Reply] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    @field_validator("replying_to", mode="before")
    @classmethod
    def _coerce_replying_to(cls, value: object) -> object:
        return ReplyingTo.from_wire(value)

    @property
    def counters(self) -> VoteCounters:
        return VoteCounters(upvotes=self.upvotes, downvotes=self.downvotes)


class Comment(BaseModel):
    """Comment on a thread; ``parent_id`` is None for top-level comments."""

    id: int
    thread_id: int
    parent_id: int | None = None
    body: str
    author: str = ""
    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)
    user_vote: WireVote = None
    replies_count: int = Field(default=0, ge=0)
    replies: list[Reply] = Field(default_factory=list)
    is_highlighted: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    @property
    def counters(self) -> VoteCounters:
        return VoteCounters(upvotes=self.upvotes, downvotes=self.downvotes)
