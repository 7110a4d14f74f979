# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import datetime, timedelta
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-inkwell")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MEDIA_ENABLED", "false")

from inkwell.api.v1.dependencies import get_media_store_dep
from inkwell.core.security import create_access_token, hash_password
from inkwell.db.session import Base, configure_sqlite_transactions
from inkwell.db.session import get_db as app_get_session
from inkwell.db.time import utcnow
from inkwell.main import app as fastapi_app
from inkwell.models import Comment, Post, User, UserRole
from inkwell.repositories.user_repo import UserRepository
from inkwell.schemas.post import PostCreate
from inkwell.services.comment_service import CommentTreeService
from inkwell.services.media import MediaDisabledError, StoredImage
from inkwell.services.post_service import PostLifecycleService

TEST_DB_URL = "sqlite://"

_EMAIL_COUNTER = count(1)
_IMAGE_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite_transactions(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Services commit, so every test starts from empty tables instead of a rollback.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


# Users


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory that persists a user with the given role."""

    def _make_user(
        role: UserRole = UserRole.READER,
        *,
        name: str | None = None,
        email: str | None = None,
        password: str | None = None,
        is_active: bool = True,
    ) -> User:
        n = next(_EMAIL_COUNTER)
        user = UserRepository(db_session).create(
            name=name or f"{role.value.title()} {n}",
            email=email or f"{role.value}{n}@example.com",
            password_hash=hash_password(password) if password else None,
            role=role.value,
            is_active=is_active,
        )
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def admin(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.ADMIN, name="Ada Admin")


@pytest.fixture()
def author(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.AUTHOR, name="Alice Author")


@pytest.fixture()
def other_author(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.AUTHOR, name="Bob Author")


@pytest.fixture()
def reader(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.READER, name="Rita Reader")


def bearer(user: User) -> dict[str, str]:
    """Return an Authorization header for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    return bearer


@pytest.fixture()
def admin_headers(admin: User) -> dict[str, str]:
    return bearer(admin)


@pytest.fixture()
def author_headers(author: User) -> dict[str, str]:
    return bearer(author)


@pytest.fixture()
def other_author_headers(other_author: User) -> dict[str, str]:
    return bearer(other_author)


@pytest.fixture()
def reader_headers(reader: User) -> dict[str, str]:
    return bearer(reader)


# Posts and comments


def post_payload(title: str = "Hello World", **overrides: Any) -> dict[str, Any]:
    """Return a JSON body accepted by the create-post endpoint."""
    payload: dict[str, Any] = {
        "title": title,
        "contentBlocks": [
            {"type": "heading", "value": "Intro"},
            {"type": "text", "value": "Some words about the world."},
        ],
        "category": "General",
        "tags": ["greeting", "intro"],
        "status": "published",
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def post_body() -> Callable[..., dict[str, Any]]:
    return post_payload


@pytest.fixture()
def make_post(db_session: Session, author: User) -> Callable[..., Post]:
    """Return a factory that creates a post through the lifecycle service."""

    def _make_post(title: str = "Hello World", owner: User | None = None, **overrides: Any) -> Post:
        data = PostCreate.model_validate(post_payload(title, **overrides))
        return PostLifecycleService(db_session).create(owner or author, data)

    return _make_post


@pytest.fixture()
def published_post(make_post: Callable[..., Post]) -> Post:
    return make_post()


@pytest.fixture()
def thread(
    db_session: Session,
    published_post: Post,
    author: User,
    reader: User,
    other_author: User,
) -> dict[str, Comment]:
    """Create top-level comment A with reply B and nested reply C."""
    service = CommentTreeService(db_session)
    a = service.create(reader, published_post.id, "First!")
    b = service.reply(author, a.id, "Thanks for reading")
    c = service.reply(other_author, b.id, "Agreed")
    return {"a": a, "b": b, "c": c}


# Media host


class FakeMediaStore:
    """In-memory stand-in for the media host client."""

    def __init__(self, enabled: bool = True, page_size: int | None = None) -> None:
        self.enabled = enabled
        self.page_size = page_size
        self.images: dict[str, StoredImage] = {}
        self.destroyed: list[str] = []
        self.closed = False

    def add(self, public_id: str, created_at: datetime) -> StoredImage:
        image = StoredImage(
            public_id=public_id,
            secure_url=f"https://media.example.com/{public_id}.jpg",
            created_at=created_at,
        )
        self.images[public_id] = image
        return image

    async def upload(self, data: bytes, filename: str, content_type: str) -> StoredImage:
        if not self.enabled:
            raise MediaDisabledError("Media host is not configured")
        return self.add(f"post_images/upload-{next(_IMAGE_COUNTER)}", utcnow())

    async def destroy(self, public_id: str) -> bool:
        self.destroyed.append(public_id)
        return self.images.pop(public_id, None) is not None

    async def list_images(
        self,
        prefix: str | None = None,
        max_results: int = 500,
        cursor: str | None = None,
    ) -> tuple[list[StoredImage], str | None]:
        size = self.page_size or max_results
        # Keyset cursor: stable while images are deleted between pages.
        ordered = sorted(
            (image for image in self.images.values() if cursor is None or image.public_id > cursor),
            key=lambda image: image.public_id,
        )
        page = ordered[:size]
        return page, (page[-1].public_id if len(ordered) > size else None)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_media() -> FakeMediaStore:
    store = FakeMediaStore()
    now = utcnow()
    store.add("post_images/old-unused", now - timedelta(hours=5))
    store.add("post_images/old-used", now - timedelta(hours=5))
    store.add("post_images/fresh-unused", now - timedelta(minutes=10))
    return store


@pytest.fixture()
def media_override(app: FastAPI, fake_media: FakeMediaStore) -> Iterator[FakeMediaStore]:
    app.dependency_overrides[get_media_store_dep] = lambda: fake_media
    try:
        yield fake_media
    finally:
        app.dependency_overrides.pop(get_media_store_dep, None)
