# src/protocol_forum/services/__init__.py
"""Voting, discussion and search services for the forum core."""

from .discussion_tree import CommentNode, DiscussionTree, ReplyNode, assemble
from .forum_client import ForumClient
from .ledger_store import LedgerStore
from .search import SearchKind, SearchPaginator, merge_search, merge_suggestions
from .vote_ledger import VoteLedger
from .vote_service import VoteService
from .voting import VoteOutcome, apply_vote

__all__ = [
    "CommentNode", "DiscussionTree", "ReplyNode", "assemble",
    "ForumClient",
    "LedgerStore",
    "SearchKind", "SearchPaginator", "merge_search", "merge_suggestions",
    "VoteLedger",
    "VoteService",
    "VoteOutcome", "apply_vote",
]
