# tests/conftest.py
from __future__ import annotations

import math
from collections.abc import Generator, Iterator
from typing import Any

import pytest
from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from protocol_forum.db.session import SessionLocal, create_tables, drop_tables
from protocol_forum.schemas.comment import Comment
from protocol_forum.services.forum_client import ForumClient, ForumConfig
from protocol_forum.services.vote_ledger import VoteLedger

TEST_DB_URL = "sqlite://"
THREAD_ID = 7


def _paginate(items: list[dict[str, Any]], page: int, per_page: int) -> tuple[list[Any], dict]:
    total = len(items)
    last_page = max(1, math.ceil(total / per_page))
    start = (page - 1) * per_page
    return items[start:start + per_page], {
        "current_page": page,
        "per_page": per_page,
        "total": total,
        "last_page": last_page,
        "has_more_pages": page < last_page,
    }


def make_comment(comment_id: int, **overrides: Any) -> Comment:
    """Build a comment payload with sensible defaults."""
    data: dict[str, Any] = {
        "id": comment_id,
        "thread_id": THREAD_ID,
        "parent_id": None,
        "body": f"Comment {comment_id}",
        "author": "ada",
        "upvotes": 0,
        "downvotes": 0,
        "replies_count": 0,
        "replies": [],
    }
    data.update(overrides)
    return Comment.model_validate(data)


def make_reply(reply_id: int, **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": reply_id,
        "body": f"Reply {reply_id}",
        "author": "grace",
        "upvotes": 0,
        "downvotes": 0,
        "nested_replies_count": 0,
        "nested_replies": [],
    }
    data.update(overrides)
    return data


@pytest.fixture()
def forum_state() -> dict[str, Any]:
    """Mutable data served by the fake forum API."""
    return {
        "comments": {
            THREAD_ID: [
                make_comment(
                    1,
                    upvotes=5,
                    downvotes=2,
                    user_vote="upvote",
                    replies_count=3,
                    replies=[make_reply(11, replying_to="ada")],
                ).model_dump(mode="json"),
                make_comment(2).model_dump(mode="json"),
                make_comment(3, parent_id=99).model_dump(mode="json"),
            ]
        },
        "replies": {
            1: [make_reply(11, replying_to="ada"), make_reply(12), make_reply(13)],
        },
        "nested": {
            11: [make_reply(40, replying_to={"id": 11, "author": "grace", "body": "Reply 11"})],
        },
        "reviews": {
            2: [
                {"id": 5, "protocol_id": 2, "rating": 4, "helpful_count": 3,
                 "not_helpful_count": 1, "user_vote": "not_helpful"},
                {"id": 6, "protocol_id": 2, "rating": 2},
            ],
        },
        "protocols": [
            {"id": i, "title": f"Sleep protocol {i}", "author": "ada"} for i in range(1, 13)
        ],
        "threads": [
            {"id": i, "title": f"Protocol thread {i}", "upvotes": i, "downvotes": 0}
            for i in range(1, 8)
        ],
        "tags": [{"id": 1, "name": "protocol"}, {"id": 2, "name": "sleep"}],
        "votes": [],
        "live_votes": {("comment", 1): "upvote"},
        "reject_votes": False,
        "requests": [],
    }


@pytest.fixture()
def forum_app(forum_state: dict[str, Any]) -> FastAPI:
    """A stand-in for the upstream forum API."""
    app = FastAPI()

    @app.get("/threads/{thread_id}/comments")
    def list_comments(thread_id: int, page: int = 1, per_page: int = 10) -> dict[str, Any]:
        forum_state["requests"].append(("comments", thread_id, page))
        chunk, pagination = _paginate(forum_state["comments"].get(thread_id, []), page, per_page)
        return {"status_code": 200, "message": "OK", "data": chunk, "pagination": pagination}

    @app.get("/comments/{comment_id}/replies")
    def list_replies(comment_id: int, page: int = 1, per_page: int = 10) -> dict[str, Any]:
        forum_state["requests"].append(("replies", comment_id, page))
        chunk, pagination = _paginate(forum_state["replies"].get(comment_id, []), page, per_page)
        return {"status_code": 200, "message": "OK", "data": chunk, "pagination": pagination}

    @app.get("/replies/{reply_id}/children")
    def list_children(reply_id: int, page: int = 1, per_page: int = 10) -> dict[str, Any]:
        forum_state["requests"].append(("children", reply_id, page))
        chunk, pagination = _paginate(forum_state["nested"].get(reply_id, []), page, per_page)
        return {"status_code": 200, "message": "OK", "data": chunk, "pagination": pagination}

    @app.get("/protocols/{protocol_id}/reviews")
    def list_reviews(protocol_id: int, page: int = 1, per_page: int = 10) -> dict[str, Any]:
        forum_state["requests"].append(("reviews", protocol_id, page))
        chunk, pagination = _paginate(forum_state["reviews"].get(protocol_id, []), page, per_page)
        return {"status_code": 200, "message": "OK", "data": chunk, "pagination": pagination}

    @app.get("/search")
    def search(q: str, type: str, page: int = 1, per_page: int = 10) -> dict[str, Any]:
        forum_state["requests"].append(("search", type, page))
        matches = [item for item in forum_state[type] if q.lower() in item["title"].lower()]
        chunk, pagination = _paginate(matches, page, per_page)
        return {
            "status_code": 200,
            "message": "OK",
            "data": {
                "query": q,
                "results": {type: chunk, f"{type}_pagination": pagination},
                "total": len(matches),
            },
        }

    @app.get("/search/suggestions")
    def suggestions(q: str, limit: int = 5) -> dict[str, Any]:
        forum_state["requests"].append(("suggestions", q, limit))
        return {
            "status_code": 200,
            "message": "OK",
            "data": {
                "protocols": forum_state["protocols"][:limit],
                "threads": forum_state["threads"][:limit],
                "tags": forum_state["tags"][:limit],
            },
        }

    @app.post("/votes")
    def cast_vote(payload: dict[str, Any] = Body(...)) -> Any:
        if forum_state["reject_votes"]:
            return JSONResponse(
                {"status_code": 422, "message": "Vote rejected", "data": None},
                status_code=422,
            )
        forum_state["votes"].append(payload)
        key = (payload["votable_type"], payload["votable_id"])
        if forum_state["live_votes"].get(key) == payload["vote_type"]:
            del forum_state["live_votes"][key]
            return {"status_code": 200, "message": "Vote removed", "data": None}
        forum_state["live_votes"][key] = payload["vote_type"]
        return {
            "status_code": 200,
            "message": "Vote recorded",
            "data": {
                "id": len(forum_state["votes"]),
                "votable_id": payload["votable_id"],
                "votable_type": payload["votable_type"],
                "type": payload["vote_type"],
                "user_id": 1,
            },
        }

    return app


@pytest.fixture()
def http_client(forum_app: FastAPI) -> Iterator[TestClient]:
    with TestClient(forum_app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def forum_config() -> ForumConfig:
    return ForumConfig(
        base_url="http://test",
        token="test-token",
        timeout_seconds=5.0,
        suggestion_limit=5,
    )


@pytest.fixture()
def forum_client(forum_config: ForumConfig, http_client: TestClient) -> ForumClient:
    return ForumClient(forum_config, http_client=http_client)


@pytest.fixture()
def ledger() -> VoteLedger:
    return VoteLedger()


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    try:
        yield engine
    finally:
        drop_tables(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    session = SessionLocal(bind=engine)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def comment_factory() -> Any:
    return make_comment


@pytest.fixture()
def reply_factory() -> Any:
    return make_reply
