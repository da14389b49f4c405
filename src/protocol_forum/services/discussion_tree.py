"""Assemble paginated comments into a bounded-depth discussion tree.

The tree has three fixed tiers: comment, reply, nested reply. Server order
is preserved at every tier; nothing is re-sorted or re-ranked here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from protocol_forum.core.errors import DanglingParentReference, InvariantViolation
from protocol_forum.schemas.comment import Comment, Reply
from protocol_forum.schemas.vote import VotableIdentity, VotableKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplyNode:
    """A reply and its flat list of nested replies."""

    reply: Reply
    nested_replies: tuple[Reply, ...] = ()

    @property
    def id(self) -> int:
        return self.reply.id

    @property
    def has_more_nested_replies(self) -> bool:
        return len(self.nested_replies) < self.reply.nested_replies_count


@dataclass(frozen=True)
class CommentNode:
    """A comment with its replies attached in arrival order."""

    comment: Comment
    replies: tuple[ReplyNode, ...] = ()
    provenance: DanglingParentReference | None = None

    @property
    def id(self) -> int:
        return self.comment.id

    @property
    def is_highlighted(self) -> bool:
        return self.comment.is_highlighted

    @property
    def has_more_replies(self) -> bool:
        return len(self.replies) < self.comment.replies_count

    def find_reply(self, reply_id: int) -> Reply | None:
        """Return a reply or nested reply under this comment by id."""
        for node in self.replies:
            if node.id == reply_id:
                return node.reply
            for nested in node.nested_replies:
                if nested.id == reply_id:
                    return nested
        return None


def _check_count(identity: VotableIdentity, declared: int, present: int, tier: str) -> None:
    if declared != present:
        raise InvariantViolation(
            f"{identity} declares {declared} {tier} but {present} were delivered",
            identity,
        )


def _reply_node(reply: Reply, *, paginated: bool) -> ReplyNode:
    if not paginated:
        _check_count(
            VotableIdentity(kind=VotableKind.REPLY, votable_id=reply.id),
            reply.nested_replies_count,
            len(reply.nested_replies),
            "nested replies",
        )
    return ReplyNode(reply=reply, nested_replies=tuple(reply.nested_replies))


def _fits_as_reply(comment: Comment) -> bool:
    # Adopted comments drop one tier, so their replies must be leaves.
    return all(
        not reply.nested_replies and reply.nested_replies_count == 0
        for reply in comment.replies
    )


def _as_reply(comment: Comment) -> Reply:
    """Re-express an adopted comment as a reply; its replies become nested replies."""
    data = comment.model_dump(include={"id", "body", "author", "upvotes", "downvotes",
                                       "user_vote", "created_at", "updated_at"})
    return Reply.model_validate(
        {
            **data,
            "nested_replies": list(comment.replies),
            "nested_replies_count": comment.replies_count,
        }
    )


def _flat_fallback(
    comment: Comment, parent_id: int, *, too_deep: bool = False
) -> DanglingParentReference:
    note = DanglingParentReference(comment_id=comment.id, parent_id=parent_id, too_deep=too_deep)
    logger.warning("Rendering %s at top level: %s", comment.id, note.describe())
    return note


@dataclass(frozen=True)
class DiscussionTree:
    """Assembled discussion for one or more pages of a thread's comments."""

    nodes: tuple[CommentNode, ...] = ()
    dangling: tuple[DanglingParentReference, ...] = ()
    comments: tuple[Comment, ...] = field(default=(), repr=False)
    replies_paginated: bool = True

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[CommentNode]:
        return iter(self.nodes)

    def find(self, comment_id: int) -> CommentNode | None:
        for node in self.nodes:
            if node.id == comment_id:
                return node
        return None

    def has_more_replies(self, node_id: int, kind: VotableKind = VotableKind.COMMENT) -> bool:
        """Return True when a "load more replies" affordance should be shown.

        Args:
            node_id: Id of a comment, or of a reply when ``kind`` is REPLY
            kind: Tier the id belongs to

        Raises:
            KeyError: If the node is not part of the tree.
        """
        if kind is VotableKind.COMMENT:
            for node in self.nodes:
                if node.id == node_id:
                    return node.has_more_replies
        elif kind is VotableKind.REPLY:
            for node in self.nodes:
                for child in node.replies:
                    if child.id == node_id:
                        return child.has_more_nested_replies
        else:
            raise ValueError(f"{kind.value} nodes do not belong to a discussion tree")
        raise KeyError(f"{kind.value} {node_id} is not in this discussion")

    def contains_reply(self, comment_id: int, reply_id: int) -> bool:
        """Return True if a permalinked reply lives under ``comment_id``."""
        for node in self.nodes:
            if node.id == comment_id:
                return node.find_reply(reply_id) is not None
        return False

    def extend(self, comments: Iterable[Comment]) -> DiscussionTree:
        """Append a further page of comments, skipping ids already present."""
        seen = {comment.id for comment in self.comments}
        merged = list(self.comments)
        for comment in comments:
            if comment.id in seen:
                continue
            seen.add(comment.id)
            merged.append(comment)
        return assemble(merged, replies_paginated=self.replies_paginated)


def assemble(comments: Sequence[Comment], *, replies_paginated: bool = True) -> DiscussionTree:
    """Build the discussion tree for a page of comments.

    Args:
        comments: Comments in server order, replies embedded
        replies_paginated: False when every reply was delivered inline, in
            which case declared counts must match what arrived

    Returns:
        Top-level nodes in input order. A comment whose parent is on the
        page is attached under it, its own replies becoming nested replies.
        A comment whose parent is missing, or whose replies would need a
        fourth tier, stays top-level with a provenance note.

    Raises:
        InvariantViolation: If ``replies_paginated`` is False and a declared
            reply count disagrees with the delivered replies.
    """
    by_id = {comment.id: comment for comment in comments}
    children: dict[int, list[Comment]] = {}
    dangling: list[DanglingParentReference] = []
    top_level: list[tuple[Comment, DanglingParentReference | None]] = []

    for comment in comments:
        parent_id = comment.parent_id
        if parent_id is None or parent_id == comment.id:
            top_level.append((comment, None))
        elif parent_id in by_id and by_id[parent_id].parent_id is None:
            if _fits_as_reply(comment):
                children.setdefault(parent_id, []).append(comment)
            else:
                note = _flat_fallback(comment, parent_id, too_deep=True)
                dangling.append(note)
                top_level.append((comment, note))
        else:
            note = _flat_fallback(comment, parent_id)
            dangling.append(note)
            top_level.append((comment, note))

    nodes: list[CommentNode] = []
    for comment, note in top_level:
        replies = [_reply_node(reply, paginated=replies_paginated) for reply in comment.replies]
        embedded = {reply.id for reply in comment.replies}
        for child in children.get(comment.id, ()):
            if child.id not in embedded:
                replies.append(_reply_node(_as_reply(child), paginated=replies_paginated))
        if not replies_paginated:
            _check_count(
                VotableIdentity(kind=VotableKind.COMMENT, votable_id=comment.id),
                comment.replies_count,
                len(replies),
                "replies",
            )
        nodes.append(CommentNode(comment=comment, replies=tuple(replies), provenance=note))

    return DiscussionTree(
        nodes=tuple(nodes),
        dangling=tuple(dangling),
        comments=tuple(comments),
        replies_paginated=replies_paginated,
    )
