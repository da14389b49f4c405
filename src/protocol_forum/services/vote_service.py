"""Optimistic vote submission on top of the ledger and the forum client."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from protocol_forum.core.errors import InvariantViolation
from protocol_forum.schemas.vote import VotableIdentity, VotableKind, VoteCounters, VoteDirection
from protocol_forum.services.discussion_tree import DiscussionTree
from protocol_forum.services.forum_client import ForumClient, VoteReceipt
from protocol_forum.services.vote_ledger import LedgerEntry, VoteLedger
from protocol_forum.services.voting import VoteOutcome, settle_vote

logger = logging.getLogger(__name__)


class VoteService:
    """Casts votes optimistically and reconciles them with the server."""

    def __init__(self, client: ForumClient, ledger: VoteLedger | None = None) -> None:
        self.client = client
        self.ledger = ledger if ledger is not None else VoteLedger()

    def cast(
        self,
        identity: VotableIdentity,
        intent: VoteDirection,
        counters: VoteCounters | None = None,
    ) -> VoteOutcome:
        """Apply ``intent`` locally, submit it, then confirm or roll back.

        Args:
            identity: Target of the vote
            intent: Direction the user clicked
            counters: Counters currently rendered for the target

        Returns:
            The confirmed counters and direction.

        Raises:
            VoteInFlightError: If a vote on the same target is still pending.
            InvariantViolation: If local state is inconsistent with counters,
                or the server reply contradicts itself. In the latter case
                the identity is dropped from the ledger and must be re-fetched.
            ForumAPIError: If the server rejected the vote or sent a
                malformed reply; the ledger has already been rolled back
                when this propagates.
        """
        optimistic = self.ledger.begin(identity, intent, counters)
        pending = self.ledger.entry(identity)
        try:
            receipt = self.client.submit_vote(identity, intent)
            entry = self._settle(identity, optimistic, pending, receipt)
        except InvariantViolation:
            # The server accepted something the ledger cannot represent.
            self.ledger.forget(identity)
            logger.warning("Vote on %s left inconsistent state, forcing a re-fetch", identity)
            raise
        except Exception:
            rolled_back = self.ledger.reject(identity)
            logger.warning("Vote on %s failed, restored %s", identity, rolled_back.direction)
            raise

        confirmed = entry.counters if entry.counters is not None else optimistic.counters
        return VoteOutcome(confirmed, entry.direction)

    def _settle(
        self,
        identity: VotableIdentity,
        optimistic: VoteOutcome,
        pending: LedgerEntry | None,
        receipt: VoteReceipt,
    ) -> LedgerEntry:
        if receipt.vote is None or receipt.vote.type is optimistic.direction:
            return self.ledger.confirm(identity, receipt.counters)

        server_counters = receipt.counters
        if server_counters is None and pending is not None and pending.confirmed_counters is not None:
            server_counters = settle_vote(
                pending.confirmed_counters,
                pending.confirmed_direction,
                receipt.vote.type,
                identity=identity,
            ).counters
        return self.ledger.observe(identity, receipt.vote.type, server_counters)

    def track(self, kind: VotableKind, entities: Iterable[Any]) -> None:
        """Reconcile the ledger against freshly fetched entities."""
        for entity in entities:
            self.ledger.observe_entity(kind, entity)

    def track_discussion(self, tree: DiscussionTree) -> None:
        """Reconcile every comment, reply and nested reply in ``tree``."""
        for node in tree:
            self.ledger.observe_entity(VotableKind.COMMENT, node.comment)
            for child in node.replies:
                self.ledger.observe_entity(VotableKind.REPLY, child.reply)
                self.track(VotableKind.REPLY, child.nested_replies)
