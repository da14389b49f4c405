"""Session-local record of the current user's vote on each votable."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from threading import Lock
from typing import Any

from protocol_forum.core.errors import InvariantViolation, VoteInFlightError
from protocol_forum.schemas.vote import (
    VotableIdentity,
    VotableKind,
    VoteCounters,
    VoteDirection,
)
from protocol_forum.services.voting import VoteOutcome, apply_vote

logger = logging.getLogger(__name__)


class VoteState(str, Enum):
    """Lifecycle of the latest transition recorded for an identity."""

    CONFIRMED = "confirmed"
    PENDING = "pending"
    REJECTED = "rejected"


@dataclass(frozen=True)
class LedgerEntry:
    """Current and last-confirmed vote state for one identity.

    ``counters`` is None when the ledger was seeded from storage and the
    entity has not been rendered yet.
    """

    direction: VoteDirection | None
    counters: VoteCounters | None
    state: VoteState = VoteState.CONFIRMED
    confirmed_direction: VoteDirection | None = None
    confirmed_counters: VoteCounters | None = None

    @classmethod
    def confirmed(
        cls, direction: VoteDirection | None, counters: VoteCounters | None
    ) -> LedgerEntry:
        return cls(
            direction=direction,
            counters=counters,
            state=VoteState.CONFIRMED,
            confirmed_direction=direction,
            confirmed_counters=counters,
        )


def _check_consistent(
    identity: VotableIdentity,
    direction: VoteDirection | None,
    counters: VoteCounters | None,
) -> None:
    if direction is None or counters is None:
        return
    if counters.count(direction) == 0:
        raise InvariantViolation(
            f"{identity} reports a {direction.value} by the current user "
            f"but its {direction.value} counter is zero",
            identity,
        )


class VoteLedger:
    """Maps each votable identity to the current user's vote direction.

    Entries only ever come from server observations or from the vote
    aggregator. A transition stays pending until the caller confirms or
    rejects it; further intents on a pending identity are refused.
    """

    def __init__(self) -> None:
        self._entries: dict[VotableIdentity, LedgerEntry] = {}
        self._forgotten: set[VotableIdentity] = set()
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[VotableIdentity]:
        return iter(list(self._entries))

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def entry(self, identity: VotableIdentity) -> LedgerEntry | None:
        return self._entries.get(identity)

    def direction(self, identity: VotableIdentity) -> VoteDirection | None:
        """Return the user's current (possibly optimistic) vote direction."""
        entry = self._entries.get(identity)
        return entry.direction if entry else None

    def has_voted(self, identity: VotableIdentity) -> bool:
        return self.direction(identity) is not None

    def has_upvoted(self, identity: VotableIdentity) -> bool:
        return self.direction(identity) is VoteDirection.UPVOTE

    def has_downvoted(self, identity: VotableIdentity) -> bool:
        return self.direction(identity) is VoteDirection.DOWNVOTE

    def is_pending(self, identity: VotableIdentity) -> bool:
        entry = self._entries.get(identity)
        return entry is not None and entry.state is VoteState.PENDING

    def observe(
        self,
        identity: VotableIdentity,
        direction: VoteDirection | None,
        counters: VoteCounters | None = None,
    ) -> LedgerEntry:
        """Reconcile an authoritative server value; the server always wins.

        Without ``counters`` the entry keeps known counters only if they were
        recorded for the same direction. Otherwise it holds no counters and
        the entity must be re-fetched before the next vote.

        Raises:
            InvariantViolation: If the server value is self-contradictory.
        """
        with self._lock:
            previous = self._entries.get(identity)
            if previous is not None and previous.direction is not direction:
                logger.debug(
                    "Server vote for %s overrides local %s with %s",
                    identity,
                    previous.direction,
                    direction,
                )
            if counters is None and previous is not None:
                # Reuse only counters that belong to the reported direction.
                if previous.direction is direction:
                    counters = previous.counters
                elif previous.confirmed_direction is direction:
                    counters = previous.confirmed_counters
            _check_consistent(identity, direction, counters)
            entry = LedgerEntry.confirmed(direction, counters)
            self._entries[identity] = entry
            self._forgotten.discard(identity)
            return entry

    def observe_entity(self, kind: VotableKind, entity: Any) -> LedgerEntry:
        """Reconcile a fetched thread, comment, reply or review."""
        identity = VotableIdentity(kind=kind, votable_id=int(entity.id))
        return self.observe(identity, entity.user_vote, entity.counters)

    def begin(
        self,
        identity: VotableIdentity,
        intent: VoteDirection,
        counters: VoteCounters | None = None,
    ) -> VoteOutcome:
        """Apply a vote intent optimistically and mark it pending.

        Args:
            identity: Target of the vote
            intent: Direction the user clicked
            counters: Counters currently rendered; required unless the
                ledger already holds counters for the identity

        Raises:
            VoteInFlightError: If a previous transition is still pending.
            InvariantViolation: If the transition would corrupt counters.
        """
        with self._lock:
            entry = self._entries.get(identity)
            if entry is not None and entry.state is VoteState.PENDING:
                raise VoteInFlightError(identity)

            current_direction = entry.direction if entry else None
            if counters is None:
                counters = entry.counters if entry else None
            if counters is None:
                raise InvariantViolation(f"No counters known for {identity}", identity)
            _check_consistent(identity, current_direction, counters)

            outcome = apply_vote(counters, current_direction, intent, identity=identity)
            self._entries[identity] = LedgerEntry(
                direction=outcome.direction,
                counters=outcome.counters,
                state=VoteState.PENDING,
                confirmed_direction=current_direction,
                confirmed_counters=counters,
            )
            self._forgotten.discard(identity)
            return outcome

    def confirm(
        self,
        identity: VotableIdentity,
        counters: VoteCounters | None = None,
    ) -> LedgerEntry:
        """Promote a pending transition, adopting server counters when given."""
        with self._lock:
            entry = self._entries.get(identity)
            if entry is None or entry.state is not VoteState.PENDING:
                # A fresh fetch already reconciled this identity.
                return entry or LedgerEntry.confirmed(None, counters)
            confirmed = LedgerEntry.confirmed(entry.direction, counters or entry.counters)
            self._entries[identity] = confirmed
            return confirmed

    def reject(self, identity: VotableIdentity) -> VoteOutcome:
        """Roll a pending transition back to the last confirmed state."""
        with self._lock:
            entry = self._entries.get(identity)
            if entry is None:
                return VoteOutcome(VoteCounters(), None)
            if entry.state is not VoteState.PENDING:
                return VoteOutcome(entry.counters or VoteCounters(), entry.direction)
            rolled_back = replace(
                entry,
                direction=entry.confirmed_direction,
                counters=entry.confirmed_counters,
                state=VoteState.REJECTED,
            )
            self._entries[identity] = rolled_back
            logger.warning("Vote on %s rejected, rolled back to %s", identity, rolled_back.direction)
            return VoteOutcome(rolled_back.counters or VoteCounters(), rolled_back.direction)

    def forget(self, identity: VotableIdentity) -> None:
        """Drop an identity so the next fetch starts from the server value.

        The identity is also removed from storage on the next flush.
        """
        with self._lock:
            if self._entries.pop(identity, None) is not None:
                self._forgotten.add(identity)

    def clear(self) -> None:
        """Drop every identity; the next flush removes them from storage too."""
        with self._lock:
            self._forgotten.update(self._entries)
            self._entries.clear()

    def pop_forgotten(self) -> set[VotableIdentity]:
        """Return and reset the identities dropped since the last call."""
        with self._lock:
            forgotten, self._forgotten = self._forgotten, set()
            return forgotten

    def confirmed_directions(self) -> dict[VotableIdentity, VoteDirection | None]:
        """Return the last confirmed direction per identity."""
        with self._lock:
            return {
                identity: entry.confirmed_direction
                for identity, entry in self._entries.items()
            }

    def seed(self, directions: Mapping[VotableIdentity, VoteDirection | None]) -> None:
        """Load stored directions without overriding anything already observed."""
        with self._lock:
            for identity, direction in directions.items():
                if identity not in self._entries:
                    self._entries[identity] = LedgerEntry.confirmed(direction, None)
                    self._forgotten.discard(identity)
