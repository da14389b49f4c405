"""Vote aggregation shared by every votable kind."""

from __future__ import annotations

from dataclasses import dataclass

from protocol_forum.core.errors import InvariantViolation
from protocol_forum.schemas.vote import VotableIdentity, VoteCounters, VoteDirection


@dataclass(frozen=True)
class VoteOutcome:
    """Counters and the user's direction after one vote transition."""

    counters: VoteCounters
    direction: VoteDirection | None


def _shift(
    counters: VoteCounters,
    direction: VoteDirection,
    delta: int,
    identity: VotableIdentity | None,
) -> VoteCounters:
    current = counters.count(direction)
    if current + delta < 0:
        target = f" on {identity}" if identity else ""
        raise InvariantViolation(
            f"Retracting a {direction.value}{target} would make its counter negative",
            identity,
        )
    if direction is VoteDirection.UPVOTE:
        return VoteCounters(upvotes=current + delta, downvotes=counters.downvotes)
    return VoteCounters(upvotes=counters.upvotes, downvotes=current + delta)


def apply_vote(
    current: VoteCounters,
    current_direction: VoteDirection | None,
    intent: VoteDirection,
    *,
    identity: VotableIdentity | None = None,
) -> VoteOutcome:
    """Compute the next counters and user direction for a vote intent.

    Args:
        current: Counters currently attached to the votable
        current_direction: The user's existing vote, or None
        intent: Direction the user just clicked
        identity: Optional target, only used to label errors

    Returns:
        The next counters and the user's resulting direction. Re-casting the
        existing direction retracts it; casting the opposite one switches.

    Raises:
        InvariantViolation: If a retraction would drive a counter below zero,
            which means local state and the server have drifted apart.
    """
    if current_direction is None:
        return VoteOutcome(_shift(current, intent, 1, identity), intent)

    if current_direction is intent:
        return VoteOutcome(_shift(current, intent, -1, identity), None)

    retracted = _shift(current, current_direction, -1, identity)
    return VoteOutcome(_shift(retracted, intent, 1, identity), intent)


def settle_vote(
    current: VoteCounters,
    current_direction: VoteDirection | None,
    target: VoteDirection | None,
    *,
    identity: VotableIdentity | None = None,
) -> VoteOutcome:
    """Move the user's vote from ``current_direction`` straight to ``target``.

    Used when the server reports a final direction rather than an intent.
    """
    if current_direction is target:
        return VoteOutcome(current, target)
    if target is None:
        return apply_vote(current, current_direction, current_direction, identity=identity)
    return apply_vote(current, current_direction, target, identity=identity)
