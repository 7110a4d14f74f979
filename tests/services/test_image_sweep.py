# tests/services/test_image_sweep.py
"""Tests for the unused image sweep and its background worker."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from inkwell.db.time import utcnow
from inkwell.services.image_sweep import (
    ImageSweepWorker,
    collect_used_image_urls,
    sweep_unused_images,
)
from inkwell.services.media import MediaError
from inkwell.services.post_service import PostLifecycleService

USED_URL = "https://media.example.com/post_images/old-used.jpg"


@pytest.mark.asyncio
async def test_sweep_deletes_only_old_unused_images(fake_media):
    deleted = await sweep_unused_images(fake_media, {USED_URL}, min_age_seconds=3 * 60 * 60)

    assert deleted == 1
    assert fake_media.destroyed == ["post_images/old-unused"]
    assert set(fake_media.images) == {"post_images/old-used", "post_images/fresh-unused"}


@pytest.mark.asyncio
async def test_sweep_follows_cursor(fake_media):
    fake_media.page_size = 1
    now = utcnow()
    for n in range(3):
        fake_media.add(f"post_images/stale-{n}", now - timedelta(days=1))

    deleted = await sweep_unused_images(fake_media, {USED_URL}, now=now, min_age_seconds=3600)

    assert deleted == 4
    assert "post_images/old-used" in fake_media.images


@pytest.mark.asyncio
async def test_sweep_with_zero_grace_deletes_fresh_uploads(fake_media):
    deleted = await sweep_unused_images(fake_media, {USED_URL}, min_age_seconds=0)
    assert deleted == 2


def test_collect_used_image_urls(db_session, make_post, author):
    kept = make_post("Kept", coverImage=USED_URL)
    trashed = make_post(
        "Trashed",
        contentBlocks=[{"type": "image", "value": "https://media.example.com/b.jpg"}],
    )
    PostLifecycleService(db_session).trash(author, trashed.id)

    assert collect_used_image_urls(db_session) == {USED_URL, "https://media.example.com/b.jpg"}
    assert kept.cover_image == USED_URL


@pytest.mark.asyncio
async def test_worker_run_once_uses_its_own_session(mocker, fake_media, db_session, make_post):
    make_post("Kept", coverImage=USED_URL)
    session_factory = mocker.MagicMock()
    session_factory.return_value.__enter__.return_value = db_session
    session_factory.return_value.__exit__.return_value = None

    worker = ImageSweepWorker(store=fake_media, session_factory=session_factory)
    deleted = await worker.run_once()

    session_factory.assert_called_once_with()
    assert deleted == 1
    assert "post_images/old-used" in fake_media.images


@pytest.mark.asyncio
async def test_worker_survives_media_errors(mocker, fake_media):
    """A failing sweep is logged and the loop keeps going until stopped."""
    worker = ImageSweepWorker(store=fake_media, session_factory=mocker.MagicMock())
    worker.run_once = AsyncMock(side_effect=MediaError("host down"))

    await worker.start()
    await asyncio.sleep(0)
    await worker.stop()

    worker.run_once.assert_awaited()
    assert worker._task is None


@pytest.mark.asyncio
async def test_worker_does_not_start_without_media_host(mocker, fake_media):
    fake_media.enabled = False
    worker = ImageSweepWorker(store=fake_media, session_factory=mocker.MagicMock())
    await worker.start()
    assert worker._task is None


@pytest.mark.asyncio
async def test_worker_survives_unexpected_data_errors(mocker, fake_media):
    worker = ImageSweepWorker(store=fake_media, session_factory=mocker.MagicMock())
    worker.run_once = AsyncMock(side_effect=ValueError("Expecting value"))

    await worker.start()
    await asyncio.sleep(0)
    assert not worker._task.done()
    await worker.stop()

    worker.run_once.assert_awaited()
