"""HTTP client for the upstream forum API.

The client only moves data: every payload is unwrapped from the
``{status_code, message, data, pagination}`` envelope and validated into
the package schemas. Voting, tree assembly and search merging happen in
the pure services that consume these results.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from protocol_forum.core.errors import ForumAPIError
from protocol_forum.core.settings import settings
from protocol_forum.schemas.comment import Comment, Reply
from protocol_forum.schemas.common import Envelope, Pagination
from protocol_forum.schemas.protocol import Protocol, Review, Tag, Thread
from protocol_forum.schemas.search import ResultPage, Suggestions
from protocol_forum.schemas.vote import (
    VotableIdentity,
    Vote,
    VoteCounters,
    VoteCreate,
    VoteDirection,
)
from protocol_forum.services.search import SearchKind, merge_suggestions

logger = logging.getLogger(__name__)

T = TypeVar("T")

HTTP_INTERNAL_SERVER_ERROR = 500


@dataclass(frozen=True)
class ForumConfig:
    """Immutable configuration for forum API access."""

    base_url: str
    token: str | None
    timeout_seconds: float
    suggestion_limit: int


@dataclass(frozen=True)
class Listing(Generic[T]):
    """One page of a listing endpoint."""

    items: list[T]
    pagination: Pagination | None


@dataclass(frozen=True)
class VoteReceipt:
    """Server acknowledgement of a vote submission.

    ``vote`` is None when the server recorded a retraction. ``counters`` is
    only present when the server echoes the voted entity.
    """

    vote: Vote | None
    counters: VoteCounters | None


def load_forum_config() -> ForumConfig:
    """Build configuration object from global settings."""

    return ForumConfig(
        base_url=settings.api_base_url,
        token=settings.api_token,
        timeout_seconds=float(settings.http_timeout_seconds),
        suggestion_limit=settings.suggestion_limit,
    )


def _counters_from_vote_data(
    data: Mapping[str, Any], identity: VotableIdentity
) -> VoteCounters | None:
    entity = data.get(identity.kind.value)
    if isinstance(entity, Mapping):
        return VoteCounters.from_entity(dict(entity))
    if any(key in data for key in ("upvotes", "helpful_count")):
        return VoteCounters.from_entity(dict(data))
    return None


class ForumClient:
    """HTTP client wrapper for the forum API."""

    def __init__(
        self,
        config: ForumConfig | None = None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.config = config or load_forum_config()
        self._client = http_client
        self._owns_client = http_client is None

    def __enter__(self) -> ForumClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.config.base_url,
                timeout=httpx.Timeout(self.config.timeout_seconds),
            )
        return self._client

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_data: Any | None = None,
    ) -> Envelope[Any]:
        client = self._ensure_client()
        try:
            response = client.request(
                method,
                path,
                params=params,
                json=json_data,
                headers=self._build_headers(),
            )
        except httpx.HTTPError as exc:
            logger.warning("Forum request %s %s failed: %s", method, path, exc)
            raise ForumAPIError(f"Forum request failed: {exc}") from exc

        if response.status_code >= HTTP_INTERNAL_SERVER_ERROR:
            raise ForumAPIError(
                f"Forum responded with {response.status_code}",
                status_code=response.status_code,
            )

        try:
            envelope = Envelope[Any].model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ForumAPIError(
                f"Malformed response from {method} {path}",
                status_code=response.status_code,
            ) from exc

        if not envelope.ok:
            raise ForumAPIError(
                envelope.message or f"{method} {path} failed",
                status_code=envelope.status_code,
            )
        return envelope

    @staticmethod
    def _parse(target: Any, payload: Any, what: str) -> Any:
        """Validate ``payload`` as ``target``, mapping schema errors to ForumAPIError."""
        try:
            return TypeAdapter(target).validate_python(payload)
        except ValidationError as exc:
            raise ForumAPIError(f"Malformed {what} in forum response") from exc

    def _listing(
        self,
        path: str,
        item_type: type[T],
        *,
        page: int = 1,
        per_page: int | None = None,
    ) -> Listing[T]:
        params = {"page": page, "per_page": settings.clamp_per_page(per_page)}
        envelope = self._request("GET", path, params=params)
        items = self._parse(list[item_type], envelope.data or [], path)  # type: ignore[valid-type]
        return Listing(items=items, pagination=envelope.pagination)

    # --- Discussion listings ---------------------------------------------------------
    def list_comments(
        self, thread_id: int, *, page: int = 1, per_page: int | None = None
    ) -> Listing[Comment]:
        """Return one page of a thread's comments with embedded replies."""
        return self._listing(f"/threads/{thread_id}/comments", Comment, page=page, per_page=per_page)

    def list_replies(
        self, comment_id: int, *, page: int = 1, per_page: int | None = None
    ) -> Listing[Reply]:
        return self._listing(f"/comments/{comment_id}/replies", Reply, page=page, per_page=per_page)

    def list_nested_replies(
        self, reply_id: int, *, page: int = 1, per_page: int | None = None
    ) -> Listing[Reply]:
        return self._listing(f"/replies/{reply_id}/children", Reply, page=page, per_page=per_page)

    def list_reviews(
        self, protocol_id: int, *, page: int = 1, per_page: int | None = None
    ) -> Listing[Review]:
        return self._listing(f"/protocols/{protocol_id}/reviews", Review, page=page, per_page=per_page)

    # --- Search ----------------------------------------------------------------------
    def _search_kind(
        self, kind: SearchKind, model: type[BaseModel], query: str, page: int, per_page: int
    ) -> ResultPage[Any]:
        envelope = self._request(
            "GET",
            "/search",
            params={"q": query, "type": kind.value, "page": page, "per_page": per_page},
        )
        data = envelope.data or {}
        results = data.get("results") if isinstance(data, Mapping) else None
        if not isinstance(results, Mapping):
            raise ForumAPIError(f"Search response for {kind.value} carries no results")
        items = self._parse(
            list[model], results.get(kind.value) or [], f"{kind.value} results"  # type: ignore[valid-type]
        )
        raw_pagination = results.get(f"{kind.value}_pagination")
        pagination = (
            self._parse(Pagination, raw_pagination, "search pagination") if raw_pagination else None
        )
        return ResultPage[model].from_listing(items, pagination)  # type: ignore[valid-type]

    def search_protocols(self, query: str, page: int = 1, per_page: int = 10) -> ResultPage[Protocol]:
        """Fetch one page of protocol search results."""
        return self._search_kind(SearchKind.PROTOCOLS, Protocol, query, page, per_page)

    def search_threads(self, query: str, page: int = 1, per_page: int = 10) -> ResultPage[Thread]:
        """Fetch one page of thread search results."""
        return self._search_kind(SearchKind.THREADS, Thread, query, page, per_page)

    def search_suggestions(self, query: str) -> Suggestions:
        """Fetch capped type-ahead suggestions for ``query``."""
        envelope = self._request(
            "GET",
            "/search/suggestions",
            params={"q": query, "limit": self.config.suggestion_limit},
        )
        data = envelope.data or {}
        if not isinstance(data, Mapping):
            raise ForumAPIError("Malformed suggestions in forum response")
        return merge_suggestions(
            self._parse(list[Protocol], data.get("protocols") or [], "protocol suggestions"),
            self._parse(list[Thread], data.get("threads") or [], "thread suggestions"),
            self._parse(list[Tag], data.get("tags") or [], "tag suggestions"),
        )

    # --- Votes -----------------------------------------------------------------------
    def submit_vote(self, identity: VotableIdentity, direction: VoteDirection) -> VoteReceipt:
        """Send a vote intent upstream and return the server's acknowledgement."""
        body = VoteCreate.for_identity(identity, direction)
        envelope = self._request("POST", "/votes", json_data=body.model_dump(mode="json"))
        data = envelope.data
        if not isinstance(data, Mapping):
            return VoteReceipt(vote=None, counters=None)

        raw_vote = data.get("vote") if "vote" in data else data if "votable_id" in data else None
        vote = self._parse(Vote, raw_vote, "vote") if isinstance(raw_vote, Mapping) else None
        try:
            counters = _counters_from_vote_data(data, identity)
        except ValidationError as exc:
            raise ForumAPIError("Malformed vote counters in forum response") from exc
        return VoteReceipt(vote=vote, counters=counters)
