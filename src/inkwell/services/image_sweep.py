"""Background removal of uploaded images that no post references.

Images are uploaded before the post that uses them is saved, so anything
younger than ``image_sweep_min_age_seconds`` is left alone even when no post
points at it yet.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inkwell.core.settings import settings
from inkwell.db.session import SessionLocal
from inkwell.db.time import as_utc, utcnow
from inkwell.repositories.post_repo import PostRepository
from inkwell.services.media import MediaDisabledError, MediaError, MediaStore, get_media_store

# Configure logger for this module
logger = logging.getLogger(__name__)


def collect_used_image_urls(db: Session) -> set[str]:
    """Return every image URL referenced by a post, trashed posts included."""
    return PostRepository(db).used_image_urls()


async def sweep_unused_images(
    store: MediaStore,
    used_urls: set[str],
    now: datetime | None = None,
    *,
    min_age_seconds: int | None = None,
    batch_size: int | None = None,
) -> int:
    """Delete stored images that are old enough and referenced by no post.

    Args:
        store: Media host client
        used_urls: URLs that must be kept
        now: Reference time for the age check
        min_age_seconds: Grace period for fresh uploads
        batch_size: Page size used when listing the host's images

    Returns:
        Number of images deleted
    """
    now = now or utcnow()
    age = settings.image_sweep_min_age_seconds if min_age_seconds is None else min_age_seconds
    cutoff = now - timedelta(seconds=age)
    page_size = batch_size or settings.image_sweep_batch_size

    deleted = 0
    cursor: str | None = None
    while True:
        images, cursor = await store.list_images(max_results=page_size, cursor=cursor)
        for image in images:
            if as_utc(image.created_at) >= cutoff or image.secure_url in used_urls:
                continue
            if await store.destroy(image.public_id):
                deleted += 1
                logger.info(
                    "Deleted unused image %s (uploaded at %s)",
                    image.public_id, image.created_at.isoformat(),
                )
        if not cursor:
            break

    logger.info("Image sweep complete; deleted %d unused images", deleted)
    return deleted


class ImageSweepWorker:
    """Periodically deletes images that no post references.

    The sweep reads post image references in a short-lived session of its
    own and only talks to the media host afterwards, so it never holds a
    transaction open against posts or comments.
    """

    def __init__(
        self,
        store: MediaStore | None = None,
        session_factory: Callable[[], Session] | None = None,
    ) -> None:
        """Initialize the sweep worker.

        Args:
            store: Optional media store. If None, uses the global store.
            session_factory: Optional session factory. If None, uses SessionLocal.
        """
        self.store = store or get_media_store()
        self._session_factory = session_factory or SessionLocal
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.store.enabled:
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def _used_urls(self) -> set[str]:
        with self._session_factory() as db:
            return collect_used_image_urls(db)

    async def run_once(self) -> int:
        """Run a single sweep and return how many images were deleted."""
        used = await asyncio.to_thread(self._used_urls)
        return await sweep_unused_images(self.store, used)

    async def _run(self) -> None:
        interval = max(1.0, float(settings.image_sweep_interval_seconds))

        while not self._stopping.is_set():
            try:
                await self.run_once()
            except MediaDisabledError:
                return
            except MediaError as e:
                logger.warning("ImageSweepWorker encountered MediaError: %s", e)
            except OSError as e:
                logger.warning("ImageSweepWorker encountered network error: %s", e)
            except SQLAlchemyError as e:
                logger.error("ImageSweepWorker could not read post images: %s", e, exc_info=True)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.error(
                    "ImageSweepWorker encountered data processing error: %s", e, exc_info=True
                )

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                continue
