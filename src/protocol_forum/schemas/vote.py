"""Vote-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, computed_field

_WIRE_ALIASES: dict[object, str] = {
    "helpful": "upvote",
    "not_helpful": "downvote",
    1: "upvote",
    -1: "downvote",
}


class VotableKind(str, Enum):
    """Entity kinds that accept up/down votes."""

    THREAD = "thread"
    COMMENT = "comment"
    REPLY = "reply"
    REVIEW = "review"


class VoteDirection(str, Enum):
    """Direction of a single user's vote."""

    UPVOTE = "upvote"
    DOWNVOTE = "downvote"

    @classmethod
    def from_wire(cls, value: object) -> VoteDirection | None:
        """Parse a server-supplied vote marker.

        Reviews use ``helpful``/``not_helpful`` and older payloads use
        ``1``/``-1``. ``None``, ``""`` and ``0`` mean the user has not voted.
        """
        if value is None or value == "" or value == 0:
            return None
        if isinstance(value, cls):
            return value
        return cls(_WIRE_ALIASES.get(value, value))


# Embedded "current user vote" marker as sent by the server.
WireVote = Annotated[VoteDirection | None, BeforeValidator(VoteDirection.from_wire)]


class VotableIdentity(BaseModel):
    """Aggregation key pairing a votable kind with its target id."""

    kind: VotableKind
    votable_id: int

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.votable_id}"


class VoteCounters(BaseModel):
    """Denormalized vote counters attached to a votable entity."""

    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def vote_score(self) -> int:
        return self.upvotes - self.downvotes

    def count(self, direction: VoteDirection) -> int:
        """Return the counter matching ``direction``."""
        if direction is VoteDirection.UPVOTE:
            return self.upvotes
        return self.downvotes

    @classmethod
    def from_entity(cls, data: Any) -> VoteCounters:
        """Read counters from an entity payload or model.

        Reviews expose ``helpful_count``/``not_helpful_count`` instead of
        ``upvotes``/``downvotes``.
        """
        if not isinstance(data, dict):
            data = {
                name: getattr(data, name, None)
                for name in ("upvotes", "downvotes", "helpful_count", "not_helpful_count")
            }
        upvotes = data.get("upvotes")
        downvotes = data.get("downvotes")
        if upvotes is None and downvotes is None:
            upvotes = data.get("helpful_count")
            downvotes = data.get("not_helpful_count")
        return cls(upvotes=upvotes or 0, downvotes=downvotes or 0)


class Vote(BaseModel):
    """A single live vote as recorded by the server."""

    id: int
    votable_type: VotableKind
    votable_id: int
    user_id: int
    type: VoteDirection
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def identity(self) -> VotableIdentity:
        return VotableIdentity(kind=self.votable_type, votable_id=self.votable_id)


class VoteCreate(BaseModel):
    """Request body for submitting a vote intent upstream."""

    votable_id: int
    votable_type: VotableKind
    vote_type: VoteDirection = Field(..., description="upvote or downvote")

    @classmethod
    def for_identity(cls, identity: VotableIdentity, direction: VoteDirection) -> VoteCreate:
        return cls(
            votable_id=identity.votable_id,
            votable_type=identity.kind,
            vote_type=direction,
        )
