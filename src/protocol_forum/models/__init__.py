"""SQLAlchemy models for the local vote ledger store."""

from .vote import StoredVote

__all__ = ["StoredVote"]
