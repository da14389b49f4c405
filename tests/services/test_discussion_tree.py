"""Tests for discussion tree assembly."""

import logging

import pytest

from protocol_forum.core.errors import InvariantViolation
from protocol_forum.schemas.vote import VotableKind
from protocol_forum.services.discussion_tree import assemble


def test_empty_page_assembles_to_empty_tree() -> None:
    tree = assemble([])

    assert len(tree) == 0
    assert tree.dangling == ()


def test_top_level_order_is_input_order(comment_factory) -> None:
    comments = [comment_factory(cid) for cid in (5, 2, 9, 1)]

    tree = assemble(comments)

    assert [node.id for node in tree] == [5, 2, 9, 1]


def test_partial_replies_show_load_more(comment_factory, reply_factory) -> None:
    comment = comment_factory(1, replies_count=3, replies=[reply_factory(10)])

    tree = assemble([comment])

    assert tree.has_more_replies(1) is True
    assert [child.id for child in tree.find(1).replies] == [10]


def test_complete_replies_hide_load_more(comment_factory, reply_factory) -> None:
    comment = comment_factory(
        1, replies_count=2, replies=[reply_factory(10), reply_factory(11)]
    )

    assert assemble([comment]).has_more_replies(1) is False


def test_nested_replies_use_the_same_rule(comment_factory, reply_factory) -> None:
    nested = reply_factory(20, replying_to={"id": 10, "author": "grace", "body": "x" * 200})
    reply = reply_factory(10, nested_replies_count=4, nested_replies=[nested])
    comment = comment_factory(1, replies_count=1, replies=[reply])

    tree = assemble([comment])

    assert tree.has_more_replies(10, VotableKind.REPLY) is True
    child = tree.find(1).replies[0]
    assert child.nested_replies[0].replying_to.author == "grace"
    assert len(child.nested_replies[0].replying_to.snippet) == 80


def test_unpaginated_count_mismatch_raises(comment_factory, reply_factory) -> None:
    comment = comment_factory(1, replies_count=3, replies=[reply_factory(10)])

    with pytest.raises(InvariantViolation):
        assemble([comment], replies_paginated=False)


def test_unpaginated_nested_count_mismatch_raises(comment_factory, reply_factory) -> None:
    reply = reply_factory(10, nested_replies_count=2)
    comment = comment_factory(1, replies_count=1, replies=[reply])

    with pytest.raises(InvariantViolation):
        assemble([comment], replies_paginated=False)


def test_missing_parent_falls_back_to_top_level(comment_factory, caplog) -> None:
    comments = [comment_factory(1), comment_factory(2, parent_id=42)]

    with caplog.at_level(logging.WARNING):
        tree = assemble(comments)

    assert [node.id for node in tree] == [1, 2]
    orphan = tree.find(2)
    assert orphan.provenance is not None
    assert orphan.provenance.parent_id == 42
    assert tree.dangling == (orphan.provenance,)
    assert "42" in caplog.text


def test_parent_on_page_adopts_child_comment(comment_factory, reply_factory) -> None:
    comments = [
        comment_factory(3, parent_id=1),
        comment_factory(1, replies_count=2, replies=[reply_factory(10)]),
        comment_factory(2),
    ]

    tree = assemble(comments)

    assert [node.id for node in tree] == [1, 2]
    assert [child.id for child in tree.find(1).replies] == [10, 3]
    assert tree.has_more_replies(1) is False


def test_adopted_child_keeps_its_replies(comment_factory, reply_factory) -> None:
    comments = [
        comment_factory(1),
        comment_factory(3, parent_id=1, replies_count=3,
                        replies=[reply_factory(30), reply_factory(31)]),
    ]

    tree = assemble(comments)

    adopted = tree.find(1).replies[0]
    assert adopted.id == 3
    assert [nested.id for nested in adopted.nested_replies] == [30, 31]
    assert adopted.has_more_nested_replies is True
    assert tree.has_more_replies(3, VotableKind.REPLY) is True
    assert tree.contains_reply(1, 31)


def test_adopted_child_count_checked_when_unpaginated(comment_factory, reply_factory) -> None:
    comments = [
        comment_factory(1, replies_count=1),
        comment_factory(3, parent_id=1, replies_count=2, replies=[reply_factory(30)]),
    ]

    with pytest.raises(InvariantViolation):
        assemble(comments, replies_paginated=False)


def test_child_too_deep_to_adopt_stays_top_level(comment_factory, reply_factory, caplog) -> None:
    deep_reply = reply_factory(30, nested_replies_count=1, nested_replies=[reply_factory(40)])
    comments = [
        comment_factory(1),
        comment_factory(3, parent_id=1, replies_count=1, replies=[deep_reply]),
    ]

    with caplog.at_level(logging.WARNING):
        tree = assemble(comments)

    assert [node.id for node in tree] == [1, 3]
    assert tree.find(1).replies == ()
    note = tree.find(3).provenance
    assert note is not None
    assert note.too_deep is True
    assert note.parent_id == 1
    assert tree.contains_reply(3, 40)
    assert "would not fit" in caplog.text


def test_highlight_flag_is_carried_through(comment_factory) -> None:
    tree = assemble([comment_factory(1), comment_factory(2, is_highlighted=True)])

    assert [node.is_highlighted for node in tree] == [False, True]


def test_contains_reply_searches_nested_replies(comment_factory, reply_factory) -> None:
    reply = reply_factory(10, nested_replies_count=1, nested_replies=[reply_factory(30)])
    tree = assemble([comment_factory(1, replies_count=1, replies=[reply]), comment_factory(2)])

    assert tree.contains_reply(1, 30)
    assert not tree.contains_reply(2, 30)
    assert not tree.contains_reply(99, 30)


def test_extend_appends_next_page_and_skips_duplicates(comment_factory) -> None:
    tree = assemble([comment_factory(1), comment_factory(2, parent_id=4)])
    assert len(tree.dangling) == 1

    extended = tree.extend([comment_factory(2, parent_id=4), comment_factory(4)])

    assert [node.id for node in extended] == [1, 4]
    assert [child.id for child in extended.find(4).replies] == [2]
    assert extended.dangling == ()


def test_unknown_node_raises_key_error(comment_factory) -> None:
    tree = assemble([comment_factory(1)])

    with pytest.raises(KeyError):
        tree.has_more_replies(404)
