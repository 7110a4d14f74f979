# src/inkwell/api/v1/endpoints/uploads.py
"""Image upload endpoints backed by the media host."""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from inkwell.api.v1.dependencies import CurrentUserDep, MediaStoreDep
from inkwell.core.settings import settings
from inkwell.schemas.media import ImageUploadResponse
from inkwell.services.media import MediaDisabledError, MediaError, MediaStore

router = APIRouter(prefix="/uploads", tags=["uploads"])
logger = logging.getLogger(__name__)

MAX_IMAGES_PER_REQUEST = 5


async def _store_image(store: MediaStore, upload: UploadFile) -> ImageUploadResponse:
    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only image uploads are allowed",
        )
    data = await upload.read(settings.media_max_upload_bytes + 1)
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image uploaded")
    if len(data) > settings.media_max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Image is too large",
        )

    try:
        image = await store.upload(data, upload.filename or "image", content_type)
    except MediaDisabledError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Image uploads are not configured",
        ) from err
    except MediaError as err:
        logger.warning("Image upload failed: %s", err)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Image host rejected the upload",
        ) from err
    return ImageUploadResponse(url=image.secure_url, public_id=image.public_id)


@router.post("/image", response_model=ImageUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    current_user: CurrentUserDep,
    store: MediaStoreDep,
    image: UploadFile = File(...),
) -> ImageUploadResponse:
    """Upload one image and return its public URL."""
    return await _store_image(store, image)


@router.post(
    "/images",
    response_model=list[ImageUploadResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upload_images(
    current_user: CurrentUserDep,
    store: MediaStoreDep,
    images: list[UploadFile] = File(...),
) -> list[ImageUploadResponse]:
    """Upload up to five images at once."""
    if len(images) > MAX_IMAGES_PER_REQUEST:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {MAX_IMAGES_PER_REQUEST} images per request",
        )
    return [await _store_image(store, image) for image in images]
