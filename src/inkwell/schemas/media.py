"""Schemas for image uploads."""

from pydantic import BaseModel


class ImageUploadResponse(BaseModel):
    """Location of an uploaded image."""

    url: str
    public_id: str
