# tests/services/test_comment_tree.py
"""Tests for threaded comments, likes, reports and moderation."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from inkwell.db.time import utcnow
from inkwell.models import Comment, CommentLike, CommentReport, UserRole
from inkwell.services.comment_service import CommentTreeService, humanize
from inkwell.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from inkwell.services.post_service import PostLifecycleService


@pytest.fixture()
def service(db_session):
    return CommentTreeService(db_session)


@pytest.fixture()
def reporters(make_user):
    return [make_user(UserRole.READER) for _ in range(4)]


def _count(db_session, model) -> int:
    return db_session.execute(select(func.count()).select_from(model)).scalar_one()


# Creation


def test_reply_chain_nests_in_tree_read(service, thread, published_post):
    """A top-level comment A with reply B and nested reply C reads back as A > B > C."""
    page = service.read_thread(None, published_post.id)

    assert page.total == 1
    [a] = page.comments
    assert a.id == thread["a"].id
    assert a.reply_count == 1
    [b] = a.replies
    assert b.id == thread["b"].id
    [c] = b.replies
    assert c.id == thread["c"].id
    assert c.parent_comment_id == thread["b"].id
    assert c.replies == []


def test_comment_on_missing_post(service, reader):
    with pytest.raises(NotFoundError):
        service.create(reader, 999999, "Hello?")


def test_comment_on_trashed_post(service, author, reader, published_post):
    PostLifecycleService(service.db).trash(author, published_post.id)
    with pytest.raises(NotFoundError):
        service.create(reader, published_post.id, "Too late")


def test_reply_to_missing_parent(service, reader, published_post):
    with pytest.raises(NotFoundError):
        service.create(reader, published_post.id, "Orphan", parent_comment_id=424242)


def test_parent_must_belong_to_same_post(service, reader, thread, make_post):
    other = make_post("Another Post")
    with pytest.raises(ValidationFailedError):
        service.create(reader, other.id, "Wrong thread", parent_comment_id=thread["a"].id)


def test_anonymous_sentinel_cannot_comment(service, published_post, make_user):
    sentinel = make_user(UserRole.ANONYMOUS, is_active=False)
    with pytest.raises(ForbiddenError):
        service.create(sentinel, published_post.id, "Boo")


# Editing and deletion


def test_only_owner_edits(service, thread, reader, author):
    updated = service.update(reader, thread["a"].id, "First, edited")
    assert updated.content == "First, edited"
    with pytest.raises(ForbiddenError):
        service.update(author, thread["a"].id, "Hijacked")


def test_delete_removes_subtree(db_session, service, thread, reader, other_author):
    """Deleting a comment removes every descendant along with their likes and reports."""
    service.toggle_like(reader, thread["c"].id)
    service.report(reader, thread["b"].id)

    removed = service.delete(reader, thread["a"].id)

    assert removed == 3
    assert _count(db_session, Comment) == 0
    assert _count(db_session, CommentLike) == 0
    assert _count(db_session, CommentReport) == 0


def test_delete_middle_keeps_ancestors(db_session, service, thread, author):
    assert service.delete(author, thread["b"].id) == 2
    remaining = db_session.execute(select(Comment.id)).scalars().all()
    assert remaining == [thread["a"].id]


def test_admin_deletes_any_comment(service, thread, admin):
    assert service.delete(admin, thread["c"].id) == 1


def test_delete_by_stranger_is_forbidden(service, thread, other_author):
    with pytest.raises(ForbiddenError):
        service.delete(other_author, thread["a"].id)


# Likes


def test_double_like_toggle_restores_like_set(service, thread, reader):
    assert service.toggle_like(reader, thread["a"].id) == (True, 1)
    assert service.toggle_like(reader, thread["a"].id) == (False, 0)


def test_likes_show_in_tree(service, thread, reader, author, published_post):
    service.toggle_like(reader, thread["b"].id)
    service.toggle_like(author, thread["b"].id)

    [a] = service.read_thread(None, published_post.id).comments
    b = a.replies[0]
    assert b.likes_count == 2
    assert sorted(b.likes) == sorted([reader.id, author.id])


# Reports and moderation


def test_duplicate_report_conflicts(service, thread, reporters):
    service.report(reporters[0], thread["a"].id)
    with pytest.raises(ConflictError):
        service.report(reporters[0], thread["a"].id)
    assert service.report_count(thread["a"].id) == 1


def test_third_report_hides_and_fourth_keeps_hidden(service, thread, reporters):
    comment_id = thread["a"].id
    assert not service.report(reporters[0], comment_id).is_hidden
    assert not service.report(reporters[1], comment_id).is_hidden
    assert service.report(reporters[2], comment_id).is_hidden
    assert service.report(reporters[3], comment_id).is_hidden
    assert service.report_count(comment_id) == 4


def test_report_locks_comment_before_counting(mocker, db_session, service, thread, reporters):
    """Reporters queue on the comment row so the threshold check sees earlier reports."""
    repo = service.comments
    manager = mocker.Mock()
    manager.attach_mock(mocker.patch.object(repo, "lock_for_report", wraps=repo.lock_for_report), "lock")
    manager.attach_mock(mocker.patch.object(repo, "add_report", wraps=repo.add_report), "add")
    manager.attach_mock(
        mocker.patch.object(repo, "hide_if_reported", wraps=repo.hide_if_reported), "hide"
    )
    scalars = mocker.spy(db_session, "scalars")

    service.report(reporters[0], thread["a"].id)

    assert [entry[0] for entry in manager.mock_calls] == ["lock", "add", "hide"]
    rendered = [str(c.args[0].compile(dialect=postgresql.dialect())) for c in scalars.call_args_list]
    assert any("FOR UPDATE" in sql for sql in rendered)


def test_report_missing_comment_is_not_found(service, reporters):
    with pytest.raises(NotFoundError):
        service.report(reporters[0], 999_999)


def test_hidden_comments_only_visible_to_admin(service, thread, reporters, admin, reader, published_post):
    for reporter in reporters[:3]:
        service.report(reporter, thread["b"].id)

    [a] = service.read_thread(reader, published_post.id).comments
    assert a.replies == []
    assert a.reply_count == 0

    [a] = service.read_thread(admin, published_post.id).comments
    [b] = a.replies
    assert b.is_hidden
    assert b.replies[0].id == thread["c"].id


def test_unhide_clears_reports(service, thread, reporters, admin):
    for reporter in reporters[:3]:
        service.report(reporter, thread["a"].id)
    assert [comment.id for comment in service.list_hidden(admin)] == [thread["a"].id]

    comment = service.unhide(admin, thread["a"].id)

    assert not comment.is_hidden
    assert service.report_count(thread["a"].id) == 0
    assert service.list_hidden(admin) == []


def test_moderation_requires_admin(service, thread, reader):
    with pytest.raises(ForbiddenError):
        service.list_hidden(reader)
    with pytest.raises(ForbiddenError):
        service.unhide(reader, thread["a"].id)


# Tree reads


def test_top_level_pagination(service, reader, published_post):
    for n in range(5):
        service.create(reader, published_post.id, f"Comment {n}")

    page = service.read_thread(None, published_post.id, page=2, limit=2)

    assert page.total == 5
    assert page.total_pages == 3
    assert page.current_page == 2
    assert page.per_page == 2
    assert [comment.content for comment in page.comments] == ["Comment 2", "Comment 1"]


def test_replies_are_oldest_first(service, thread, reader, author, published_post):
    later = service.reply(author, thread["a"].id, "Second reply")
    [a] = service.read_thread(None, published_post.id).comments
    assert [reply.id for reply in a.replies] == [thread["b"].id, later.id]


def test_read_flags_for_caller(service, thread, reader, published_post):
    [a] = service.read_thread(reader, published_post.id).comments
    assert a.is_owner and a.can_edit
    b = a.replies[0]
    assert not b.is_owner and not b.can_edit
    assert a.user.name == "Rita Reader"


def test_anonymous_read_has_no_owner_flags(service, thread, published_post):
    [a] = service.read_thread(None, published_post.id).comments
    assert not a.is_owner and not a.can_edit


def test_read_on_trashed_post_is_not_found(service, author, thread, published_post):
    PostLifecycleService(service.db).trash(author, published_post.id)
    with pytest.raises(NotFoundError):
        service.read_thread(None, published_post.id)


def test_humanize():
    now = utcnow()
    assert humanize(now - timedelta(minutes=5), now) == "5 minutes ago"
    assert humanize(now - timedelta(days=2), now) == "2 days ago"
