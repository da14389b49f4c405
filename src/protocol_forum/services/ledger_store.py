"""Load and flush the vote ledger to local storage."""
from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from protocol_forum.models import StoredVote
from protocol_forum.schemas.vote import VotableIdentity, VotableKind, VoteDirection
from protocol_forum.services.vote_ledger import VoteLedger

__all__ = ["LedgerStore"]

logger = logging.getLogger(__name__)


class LedgerStore:
    """Explicit persistence lifecycle for a session's vote ledger.

    Only confirmed directions are written, so an optimistic vote that is
    later rejected never reaches storage.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the store with a SQLAlchemy session."""
        self.session = session

    def read(self) -> dict[VotableIdentity, VoteDirection]:
        """Return every stored direction keyed by votable identity."""
        rows = self.session.execute(select(StoredVote)).scalars()
        return {
            VotableIdentity(kind=VotableKind(row.votable_kind), votable_id=row.votable_id):
                VoteDirection(row.direction)
            for row in rows
        }

    def load(self, ledger: VoteLedger | None = None) -> VoteLedger:
        """Seed ``ledger`` (or a new one) from storage and return it."""
        ledger = ledger if ledger is not None else VoteLedger()
        stored = self.read()
        ledger.seed(stored)
        logger.debug("Loaded %d stored votes into the ledger", len(stored))
        return ledger

    def flush(self, ledger: VoteLedger) -> int:
        """Write the ledger's confirmed directions and commit.

        Identities whose confirmed direction is None, and identities the
        ledger has forgotten since the last flush, are removed.

        Returns:
            Number of rows written or updated.
        """
        written = 0
        for identity in ledger.pop_forgotten():
            self._delete(identity)

        for identity, direction in ledger.confirmed_directions().items():
            if direction is None:
                self._delete(identity)
                continue

            row = self.session.get(StoredVote, (identity.kind.value, identity.votable_id))
            if row is None:
                self.session.add(
                    StoredVote(
                        votable_kind=identity.kind.value,
                        votable_id=identity.votable_id,
                        direction=direction.value,
                    )
                )
            elif row.direction != direction.value:
                row.direction = direction.value
            else:
                continue
            written += 1

        self.session.commit()
        return written

    def _delete(self, identity: VotableIdentity) -> None:
        self.session.execute(
            delete(StoredVote).where(
                StoredVote.votable_kind == identity.kind.value,
                StoredVote.votable_id == identity.votable_id,
            )
        )

    def clear(self) -> None:
        """Remove every stored vote, e.g. on logout."""
        self.session.execute(delete(StoredVote))
        self.session.commit()
