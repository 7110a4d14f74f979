"""Role and ownership rules for every post and comment operation.

All authorization decisions go through :func:`can`, which evaluates one
rule table keyed by :class:`Action`. Services call :func:`authorize` before
mutating anything; read models use :func:`can` for view-only flags.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from inkwell.models import Comment, Post, User, UserRole
from inkwell.services.errors import ForbiddenError

WRITER_ROLES = frozenset({UserRole.AUTHOR.value, UserRole.ADMIN.value})
MEMBER_ROLES = frozenset(
    {UserRole.ADMIN.value, UserRole.AUTHOR.value, UserRole.READER.value}
)


class Action(str, Enum):
    """Operations subject to authorization."""

    CREATE_POST = "create_post"
    UPDATE_POST = "update_post"
    TRASH_POST = "trash_post"
    AUTHOR_RESTORE = "author_restore"
    ADMIN_RESTORE = "admin_restore"
    REPUBLISH = "republish"
    USER_PERMANENT_DELETE = "user_permanent_delete"
    ADMIN_PERMANENT_DELETE = "admin_permanent_delete"
    LIKE_POST = "like_post"
    VIEW_DELETED_POST = "view_deleted_post"
    VIEW_TRASH = "view_trash"
    REVIEW_POSTS = "review_posts"
    AUDIT_IMAGES = "audit_images"
    CREATE_COMMENT = "create_comment"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT = "delete_comment"
    LIKE_COMMENT = "like_comment"
    REPORT_COMMENT = "report_comment"
    MODERATE_COMMENTS = "moderate_comments"
    MANAGE_USERS = "manage_users"


def _is_member(caller: User) -> bool:
    return caller.is_active and caller.role in MEMBER_ROLES


def _is_writer(caller: User) -> bool:
    return caller.is_active and caller.role in WRITER_ROLES


def _is_admin(caller: User) -> bool:
    return caller.is_active and caller.is_admin


def _owns_post(caller: User, post: Post) -> bool:
    return post.author_id == caller.id


def _owns_comment(caller: User, comment: Comment) -> bool:
    return comment.user_id == caller.id


def _writer_owner_or_admin(caller: User, post: Post) -> bool:
    return _is_admin(caller) or (_is_writer(caller) and _owns_post(caller, post))


def _writer_owner(caller: User, post: Post) -> bool:
    return _is_writer(caller) and _owns_post(caller, post)


def _permanent_delete(caller: User, post: Post) -> bool:
    # The original author may re-apply the delete after authorship moved away.
    if not _is_writer(caller):
        return False
    if _owns_post(caller, post):
        return True
    return post.is_user_deleted_permanently and post.original_author_id == caller.id


Rule = Callable[[User, Any], bool]

_RULES: dict[Action, Rule] = {
    Action.CREATE_POST: lambda caller, _: _is_writer(caller),
    Action.UPDATE_POST: _writer_owner_or_admin,
    Action.TRASH_POST: _writer_owner_or_admin,
    Action.AUTHOR_RESTORE: _writer_owner,
    Action.ADMIN_RESTORE: lambda caller, _: _is_admin(caller),
    Action.REPUBLISH: lambda caller, _: _is_admin(caller),
    Action.USER_PERMANENT_DELETE: _permanent_delete,
    Action.ADMIN_PERMANENT_DELETE: lambda caller, _: _is_admin(caller),
    Action.LIKE_POST: lambda caller, _: _is_member(caller),
    Action.VIEW_DELETED_POST: lambda caller, _: _is_admin(caller),
    Action.VIEW_TRASH: lambda caller, _: _is_writer(caller),
    Action.REVIEW_POSTS: lambda caller, _: _is_admin(caller),
    Action.AUDIT_IMAGES: lambda caller, _: _is_admin(caller),
    Action.CREATE_COMMENT: lambda caller, _: _is_member(caller),
    Action.EDIT_COMMENT: lambda caller, comment: (
        _is_member(caller) and _owns_comment(caller, comment)
    ),
    Action.DELETE_COMMENT: lambda caller, comment: (
        _is_admin(caller) or (_is_member(caller) and _owns_comment(caller, comment))
    ),
    Action.LIKE_COMMENT: lambda caller, _: _is_member(caller),
    Action.REPORT_COMMENT: lambda caller, _: _is_member(caller),
    Action.MODERATE_COMMENTS: lambda caller, _: _is_admin(caller),
    Action.MANAGE_USERS: lambda caller, _: _is_admin(caller),
}

_DENIALS: dict[Action, str] = {
    Action.CREATE_POST: "Only authors and admins can create posts",
    Action.UPDATE_POST: "Not authorized to update this post",
    Action.TRASH_POST: "Not authorized to delete this post",
    Action.AUTHOR_RESTORE: "Only the author can restore this post",
    Action.USER_PERMANENT_DELETE: "Only the author can permanently delete their post",
    Action.ADMIN_PERMANENT_DELETE: "Only admin can permanently delete posts",
    Action.EDIT_COMMENT: "You can only edit your own comments",
    Action.DELETE_COMMENT: "Not authorized to delete this comment",
}


def can(caller: User | None, action: Action, resource: Any = None) -> bool:
    """Return True if ``caller`` may perform ``action`` on ``resource``."""
    if caller is None:
        return False
    return _RULES[action](caller, resource)


def authorize(caller: User | None, action: Action, resource: Any = None) -> None:
    """Raise :class:`ForbiddenError` unless ``caller`` may perform ``action``."""
    if not can(caller, action, resource):
        raise ForbiddenError(_DENIALS.get(action))
