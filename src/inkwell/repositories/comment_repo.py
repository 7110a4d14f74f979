"""Data access helpers for comments, comment likes and reports."""
from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection

from sqlalchemy import ColumnElement, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inkwell.models.comment import Comment, CommentLike, CommentReport

__all__ = ["CommentRepository"]


class CommentRepository:
    """Thin wrapper around database access for comment entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, comment_id: int) -> Comment | None:
        """Return a comment by identifier."""
        return self.session.get(Comment, comment_id)

    def create(
        self,
        *,
        post_id: int,
        user_id: int,
        content: str,
        parent_comment_id: int | None = None,
    ) -> Comment:
        """Insert a new comment and flush so the id is assigned."""
        comment = Comment(
            post_id=post_id,
            user_id=user_id,
            content=content,
            parent_comment_id=parent_comment_id,
        )
        self.session.add(comment)
        self.session.flush()
        return comment

    @staticmethod
    def _visible(include_hidden: bool) -> list[ColumnElement[bool]]:
        conditions = [Comment.is_approved.is_(True)]
        if not include_hidden:
            conditions.append(Comment.is_hidden.is_(False))
        return conditions

    def top_level_page(
        self,
        post_id: int,
        *,
        page: int,
        limit: int,
        include_hidden: bool = False,
    ) -> tuple[list[Comment], int]:
        """Return one page of top-level comments, newest first, and their total."""
        conditions = [
            Comment.post_id == post_id,
            Comment.parent_comment_id.is_(None),
            *self._visible(include_hidden),
        ]
        total = self.session.execute(
            select(func.count()).select_from(Comment).where(*conditions)
        ).scalar_one()
        result = self.session.execute(
            select(Comment)
            .where(*conditions)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().unique()), total

    def children_of(
        self,
        parent_ids: Collection[int],
        *,
        include_hidden: bool = False,
    ) -> dict[int, list[Comment]]:
        """Return the direct replies of each parent, oldest first."""
        children: dict[int, list[Comment]] = defaultdict(list)
        if not parent_ids:
            return children
        result = self.session.execute(
            select(Comment)
            .where(Comment.parent_comment_id.in_(parent_ids), *self._visible(include_hidden))
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        for comment in result.scalars().unique():
            children[comment.parent_comment_id].append(comment)
        return children

    def subtree_ids(self, root_id: int) -> list[int]:
        """Return ``root_id`` and the ids of every reply beneath it."""
        collected = [root_id]
        frontier = [root_id]
        while frontier:
            result = self.session.execute(
                select(Comment.id).where(Comment.parent_comment_id.in_(frontier))
            )
            frontier = list(result.scalars())
            collected.extend(frontier)
        return collected

    def delete_many(self, comment_ids: Collection[int]) -> None:
        """Delete comments together with their likes and reports."""
        if not comment_ids:
            return
        self.session.execute(delete(CommentLike).where(CommentLike.comment_id.in_(comment_ids)))
        self.session.execute(
            delete(CommentReport).where(CommentReport.comment_id.in_(comment_ids))
        )
        self.session.execute(
            delete(Comment)
            .where(Comment.id.in_(comment_ids))
            .execution_options(synchronize_session="fetch")
        )

    def toggle_like(self, comment_id: int, user_id: int) -> bool:
        """Add or remove ``user_id`` in the comment's like set.

        Returns:
            True if the user now likes the comment, False if the like was removed.
        """
        removed = self.session.execute(
            delete(CommentLike).where(
                CommentLike.comment_id == comment_id,
                CommentLike.user_id == user_id,
            )
        )
        if removed.rowcount:
            return False
        try:
            with self.session.begin_nested():
                self.session.add(CommentLike(comment_id=comment_id, user_id=user_id))
        except IntegrityError:
            # A concurrent request from the same user inserted the like first.
            return True
        return True

    def like_count(self, comment_id: int) -> int:
        """Return the size of the comment's like set."""
        return self.session.execute(
            select(func.count())
            .select_from(CommentLike)
            .where(CommentLike.comment_id == comment_id)
        ).scalar_one()

    def likes_for(self, comment_ids: Collection[int]) -> dict[int, list[int]]:
        """Return the liking user ids for each of ``comment_ids``."""
        likes: dict[int, list[int]] = defaultdict(list)
        if not comment_ids:
            return likes
        result = self.session.execute(
            select(CommentLike.comment_id, CommentLike.user_id)
            .where(CommentLike.comment_id.in_(comment_ids))
            .order_by(CommentLike.user_id)
        )
        for comment_id, user_id in result:
            likes[comment_id].append(user_id)
        return likes

    def lock_for_report(self, comment_id: int) -> Comment | None:
        """Return the comment with its row locked until the transaction ends.

        Reporters of the same comment queue on this lock, so each one counts
        the reports already committed by the others before deciding to hide.
        """
        return self.session.scalars(
            select(Comment).where(Comment.id == comment_id).with_for_update()
        ).one_or_none()

    def add_report(self, comment_id: int, user_id: int) -> bool:
        """Record a report; return False if this user already reported the comment."""
        try:
            with self.session.begin_nested():
                self.session.add(CommentReport(comment_id=comment_id, user_id=user_id))
        except IntegrityError:
            return False
        return True

    def report_count(self, comment_id: int) -> int:
        """Return how many distinct users reported the comment."""
        return self.session.execute(
            select(func.count())
            .select_from(CommentReport)
            .where(CommentReport.comment_id == comment_id)
        ).scalar_one()

    def hide_if_reported(self, comment_id: int, threshold: int) -> bool:
        """Hide the comment once its report count reaches ``threshold``.

        The count is evaluated inside the UPDATE so the decision is made
        against the stored report set, not a cached copy.

        Returns:
            True if this call flipped the comment to hidden.
        """
        reports = (
            select(func.count())
            .select_from(CommentReport)
            .where(CommentReport.comment_id == comment_id)
            .scalar_subquery()
        )
        result = self.session.execute(
            update(Comment)
            .where(
                Comment.id == comment_id,
                Comment.is_hidden.is_(False),
                reports >= threshold,
            )
            .values(is_hidden=True)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    def list_hidden(self) -> list[Comment]:
        """Return hidden comments, most recent first."""
        result = self.session.execute(
            select(Comment)
            .where(Comment.is_hidden.is_(True))
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        return list(result.scalars().unique())

    def unhide(self, comment_id: int) -> None:
        """Clear the hidden flag and the report set behind it."""
        self.session.execute(
            delete(CommentReport).where(CommentReport.comment_id == comment_id)
        )
        self.session.execute(
            update(Comment)
            .where(Comment.id == comment_id)
            .values(is_hidden=False)
            .execution_options(synchronize_session=False)
        )
