"""
Pydantic schemas for the forum data contracts.

These schemas define the structure of upstream API data for validation.
"""

from .comment import Comment, Reply, ReplyingTo
from .common import Envelope, Pagination, next_page
from .protocol import Protocol, Review, Tag, Thread
from .search import ResultPage, SearchResult, Suggestions
from .vote import (
    VotableIdentity,
    VotableKind,
    Vote,
    VoteCounters,
    VoteCreate,
    VoteDirection,
)

__all__ = [
    "Comment", "Reply", "ReplyingTo",
    "Envelope", "Pagination", "next_page",
    "Protocol", "Review", "Tag", "Thread",
    "ResultPage", "SearchResult", "Suggestions",
    "VotableIdentity", "VotableKind", "Vote", "VoteCounters", "VoteCreate", "VoteDirection",
]
