"""Mapping checks for the ORM models in inkwell.models.

These cover table names, the composite keys that give likes and reports
their set semantics, and the derived lifecycle state of a post.
"""

import pytest

from inkwell.models import (
    Comment,
    CommentLike,
    CommentReport,
    LifecycleState,
    Post,
    PostLike,
    User,
    UserRole,
)
from inkwell.models.post import referenced_images


def test_table_names():
    """Model classes expose expected __tablename__ values."""
    assert User.__tablename__ == "users"
    assert Post.__tablename__ == "posts"
    assert PostLike.__tablename__ == "post_likes"
    assert Comment.__tablename__ == "comments"
    assert CommentLike.__tablename__ == "comment_likes"
    assert CommentReport.__tablename__ == "comment_reports"


@pytest.mark.parametrize("model,key", [
    (PostLike, {"post_id", "user_id"}),
    (CommentLike, {"comment_id", "user_id"}),
    (CommentReport, {"comment_id", "user_id"}),
])
def test_composite_primary_keys(model, key):
    """A user can appear at most once in each like or report set."""
    assert {c.name for c in model.__table__.primary_key} == key


def test_unique_columns():
    assert User.__table__.c.email.unique
    assert User.__table__.c.external_id.unique
    assert Post.__table__.c.slug.unique


@pytest.mark.parametrize("status,is_deleted,permanently,expected", [
    ("draft", False, False, LifecycleState.DRAFT),
    ("under_review", False, False, LifecycleState.UNDER_REVIEW),
    ("published", False, False, LifecycleState.PUBLISHED),
    ("published", True, False, LifecycleState.TRASHED),
    ("draft", True, True, LifecycleState.ANONYMIZED_TRASHED),
])
def test_lifecycle_state(status, is_deleted, permanently, expected):
    post = Post(status=status, is_deleted=is_deleted, is_user_deleted_permanently=permanently)
    assert post.lifecycle_state is expected


def test_user_role_helpers():
    assert User(role=UserRole.ADMIN.value).is_admin
    assert User(role=UserRole.ANONYMOUS.value).is_anonymous_sentinel
    assert not User(role=UserRole.AUTHOR.value).is_admin


def test_referenced_images_collects_cover_and_image_blocks():
    blocks = [
        {"type": "text", "value": "https://not-an-image.example.com"},
        {"type": "image", "value": "https://media.example.com/a.jpg"},
        {"type": "image", "value": ""},
    ]
    urls = referenced_images("https://media.example.com/cover.jpg", blocks)
    assert urls == {"https://media.example.com/a.jpg", "https://media.example.com/cover.jpg"}
    assert referenced_images(None, None) == set()
