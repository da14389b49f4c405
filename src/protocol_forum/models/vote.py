# src/protocol_forum/models/vote.py
"""Model persisting the current user's confirmed vote directions."""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from protocol_forum.db.session import Base


class StoredVote(Base):
    """Confirmed vote direction of the session user on one votable.

    Rows are rebuildable copies of server state; the server remains the
    store of record.
    """

    __tablename__ = "vote_ledger"
    __table_args__ = (
        CheckConstraint(
            "votable_kind IN ('thread', 'comment', 'reply', 'review')",
            name="ck_vote_ledger_kind",
        ),
        CheckConstraint(
            "direction IN ('upvote', 'downvote')",
            name="ck_vote_ledger_direction",
        ),
    )

    # Composite primary key keeps one row per votable identity.
    votable_kind: Mapped[str] = mapped_column(String(16), primary_key=True)
    votable_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)

    direction: Mapped[str] = mapped_column(String(16), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
