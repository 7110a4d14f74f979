# src/inkwell/services/comment_service.py
"""Threaded comments: creation, tree reads, likes, reports and moderation."""

from __future__ import annotations

import logging
from datetime import datetime

import arrow
from sqlalchemy.orm import Session

from inkwell.core.settings import settings
from inkwell.db.time import as_utc, utcnow
from inkwell.models import Comment, Post, User
from inkwell.repositories.comment_repo import CommentRepository
from inkwell.repositories.post_repo import PostRepository
from inkwell.schemas.comment import CommentNode, CommentPage
from inkwell.schemas.common import Page
from inkwell.services.errors import (
    ConflictError,
    NotFoundError,
    ValidationFailedError,
    commit_or_raise,
)
from inkwell.services.permissions import Action, authorize, can

logger = logging.getLogger(__name__)


def humanize(moment: datetime, now: datetime) -> str:
    """Return ``moment`` relative to ``now``, e.g. ``"5 minutes ago"``."""
    return arrow.get(as_utc(moment)).humanize(arrow.get(as_utc(now)))


class CommentTreeService:
    """Comment operations performed on behalf of a caller."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.comments = CommentRepository(db)
        self.posts = PostRepository(db)

    def _get_comment(self, comment_id: int) -> Comment:
        comment = self.comments.get_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        return comment

    def _get_visible_post(self, caller: User | None, post_id: int) -> Post:
        post = self.posts.get_by_id(post_id)
        if post is None or (post.is_deleted and not can(caller, Action.VIEW_DELETED_POST, post)):
            raise NotFoundError("Post not found")
        return post

    # Creation and editing

    def create(
        self,
        caller: User,
        post_id: int,
        content: str,
        parent_comment_id: int | None = None,
    ) -> Comment:
        """Add a comment to a post, or a reply when ``parent_comment_id`` is set.

        Raises:
            NotFoundError: If the post or the parent comment does not exist
            ValidationFailedError: If the parent belongs to a different post
        """
        authorize(caller, Action.CREATE_COMMENT)
        post = self._get_visible_post(caller, post_id)
        if post.is_deleted:
            raise NotFoundError("Post not found")
        if parent_comment_id is not None:
            parent = self.comments.get_by_id(parent_comment_id)
            if parent is None:
                raise NotFoundError("Parent comment not found")
            if parent.post_id != post.id:
                raise ValidationFailedError("Parent comment belongs to a different post")

        comment = self.comments.create(
            post_id=post.id,
            user_id=caller.id,
            content=content,
            parent_comment_id=parent_comment_id,
        )
        commit_or_raise(self.db, "adding a comment")
        self.db.refresh(comment)
        return comment

    def reply(self, caller: User, parent_comment_id: int, content: str) -> Comment:
        """Reply to an existing comment on the same post."""
        parent = self.comments.get_by_id(parent_comment_id)
        if parent is None:
            raise NotFoundError("Parent comment not found")
        return self.create(caller, parent.post_id, content, parent_comment_id=parent.id)

    def update(self, caller: User, comment_id: int, content: str) -> Comment:
        """Replace the text of the caller's own comment."""
        comment = self._get_comment(comment_id)
        authorize(caller, Action.EDIT_COMMENT, comment)
        comment.content = content
        commit_or_raise(self.db, "editing a comment")
        self.db.refresh(comment)
        return comment

    def delete(self, caller: User, comment_id: int) -> int:
        """Delete a comment and every reply beneath it.

        Returns:
            How many comments were removed
        """
        comment = self._get_comment(comment_id)
        authorize(caller, Action.DELETE_COMMENT, comment)
        doomed = self.comments.subtree_ids(comment.id)
        self.comments.delete_many(doomed)
        commit_or_raise(self.db, "deleting a comment")
        logger.info(
            "Comment %s and %d replies deleted by user %s",
            comment_id, len(doomed) - 1, caller.id,
        )
        return len(doomed)

    # Likes and reports

    def toggle_like(self, caller: User, comment_id: int) -> tuple[bool, int]:
        """Flip the caller's like on a comment.

        Returns:
            Whether the caller now likes the comment, and the new like count
        """
        authorize(caller, Action.LIKE_COMMENT)
        comment = self._get_comment(comment_id)
        liked = self.comments.toggle_like(comment.id, caller.id)
        commit_or_raise(self.db, "toggling a comment like")
        return liked, self.comments.like_count(comment.id)

    def report(self, caller: User, comment_id: int) -> Comment:
        """Record the caller's report and hide the comment at the threshold.

        Raises:
            ConflictError: If the caller already reported this comment
        """
        authorize(caller, Action.REPORT_COMMENT)
        comment = self.comments.lock_for_report(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        if not self.comments.add_report(comment.id, caller.id):
            raise ConflictError("You already reported this comment")
        hidden_now = self.comments.hide_if_reported(
            comment.id, settings.comment_hide_threshold
        )
        commit_or_raise(self.db, "reporting a comment")
        self.db.refresh(comment)
        if hidden_now:
            logger.info("Comment %s hidden after reaching the report threshold", comment.id)
        return comment

    def report_count(self, comment_id: int) -> int:
        """Return how many users reported the comment."""
        return self.comments.report_count(comment_id)

    # Moderation

    def list_hidden(self, caller: User) -> list[Comment]:
        """Return comments hidden by reports."""
        authorize(caller, Action.MODERATE_COMMENTS)
        return self.comments.list_hidden()

    def unhide(self, caller: User, comment_id: int) -> Comment:
        """Make a hidden comment visible again and clear its reports."""
        authorize(caller, Action.MODERATE_COMMENTS)
        comment = self._get_comment(comment_id)
        self.comments.unhide(comment.id)
        commit_or_raise(self.db, "unhiding a comment")
        self.db.refresh(comment)
        logger.info("Comment %s unhidden by admin %s", comment.id, caller.id)
        return comment

    # Tree reads

    def read_thread(
        self,
        caller: User | None,
        post_id: int,
        *,
        page: int = 1,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> CommentPage:
        """Return a page of top-level comments with all their replies.

        Top-level comments come newest first and are the only level that is
        paginated. Replies at every depth follow beneath their parent, oldest
        first. The tree is gathered one level at a time, so thread depth
        never grows the call stack.
        """
        self._get_visible_post(caller, post_id)
        limit = limit or settings.comments_page_size
        include_hidden = can(caller, Action.MODERATE_COMMENTS)

        roots, total = self.comments.top_level_page(
            post_id, page=page, limit=limit, include_hidden=include_hidden
        )

        everything: list[Comment] = list(roots)
        children: dict[int, list[Comment]] = {}
        frontier = [comment.id for comment in roots]
        while frontier:
            level = self.comments.children_of(frontier, include_hidden=include_hidden)
            frontier = []
            for parent_id, kids in level.items():
                children[parent_id] = kids
                everything.extend(kids)
                frontier.extend(kid.id for kid in kids)

        likes = self.comments.likes_for([comment.id for comment in everything])
        now = now or utcnow()
        nodes = {
            comment.id: self._decorate(
                comment, caller, likes.get(comment.id, []), children.get(comment.id, []), now
            )
            for comment in everything
        }
        for parent_id, kids in children.items():
            nodes[parent_id].replies = [nodes[kid.id] for kid in kids]

        return CommentPage(
            comments=[nodes[comment.id] for comment in roots],
            **Page.meta(total, page, limit),
        )

    @staticmethod
    def _decorate(
        comment: Comment,
        caller: User | None,
        likes: list[int],
        replies: list[Comment],
        now: datetime,
    ) -> CommentNode:
        node = CommentNode.model_validate(
            {
                "id": comment.id,
                "post_id": comment.post_id,
                "user_id": comment.user_id,
                "user": comment.user,
                "content": comment.content,
                "parent_comment_id": comment.parent_comment_id,
                "is_hidden": comment.is_hidden,
                "is_approved": comment.is_approved,
                "created_at": comment.created_at,
                "updated_at": comment.updated_at,
                "likes": likes,
                "likes_count": len(likes),
                "time_ago": humanize(comment.created_at, now),
                "reply_count": len(replies),
            },
            from_attributes=True,
        )
        if caller is not None:
            node.is_owner = comment.user_id == caller.id
            node.can_edit = can(caller, Action.DELETE_COMMENT, comment)
        return node
