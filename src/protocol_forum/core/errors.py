"""Error taxonomy for the forum core.

Core services either return a well-typed result or raise one of the
exceptions below. Degradations that are not failures, such as a comment
whose parent is outside the current page, are reported as records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from protocol_forum.schemas.vote import VotableIdentity


class ForumError(RuntimeError):
    """Base exception raised for forum core failures."""


class InvariantViolation(ForumError):
    """Raised when local vote state can no longer be trusted.

    The affected entity must be re-fetched from the server; the core never
    guesses a corrected value.
    """

    def __init__(self, message: str, identity: VotableIdentity | None = None) -> None:
        super().__init__(message)
        self.identity = identity


class VoteInFlightError(ForumError):
    """Raised when a vote intent arrives while a prior one is unconfirmed."""

    def __init__(self, identity: VotableIdentity) -> None:
        super().__init__(f"A vote on {identity} is still pending confirmation")
        self.identity = identity


class ForumAPIError(ForumError):
    """Raised when the upstream forum API fails or returns an error envelope."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class DanglingParentReference:
    """Provenance note for a comment rendered at top level instead of under its parent.

    ``too_deep`` is set when the parent is on the page but the comment's own
    replies have replies of their own, which the three-tier tree cannot hold.
    """

    comment_id: int
    parent_id: int
    too_deep: bool = False

    def describe(self) -> str:
        if self.too_deep:
            return (
                f"comment {self.comment_id} replies to comment {self.parent_id}, "
                "but its own replies would not fit under that comment"
            )
        return (
            f"comment {self.comment_id} replies to comment {self.parent_id}, "
            "which is not a top-level comment on this page"
        )
