# src/inkwell/scripts/sweep_images.py
"""
Cron job that removes uploaded images no post references.

Run it on a schedule (every three hours matches the default grace period):

    python -m inkwell.scripts.sweep_images
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from inkwell.core.settings import settings
from inkwell.db.session import SessionLocal
from inkwell.services.image_sweep import collect_used_image_urls, sweep_unused_images
from inkwell.services.media import MediaError, get_media_store

logger = logging.getLogger(__name__)


async def run_sweep(min_age_seconds: int | None = None) -> int:
    """Run one sweep pass and return the number of deleted images."""
    store = get_media_store()
    if not store.enabled:
        logger.warning("Media host is not configured; nothing to sweep")
        return 0

    db = SessionLocal()
    try:
        used = collect_used_image_urls(db)
    finally:
        db.close()

    try:
        return await sweep_unused_images(store, used, min_age_seconds=min_age_seconds)
    finally:
        await store.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete uploaded images no post references")
    parser.add_argument(
        "--min-age-seconds",
        type=int,
        default=None,
        help="Only delete images older than this (defaults to IMAGE_SWEEP_MIN_AGE_SECONDS)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper())
    try:
        deleted = asyncio.run(run_sweep(args.min_age_seconds))
    except MediaError as exc:
        print(f"[sweep_images] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"[sweep_images] deleted {deleted} unused images")


if __name__ == "__main__":
    main()
