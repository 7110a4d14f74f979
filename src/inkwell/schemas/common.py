"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

import math

from pydantic import BaseModel, Field


class Page(BaseModel):
    """Pagination metadata returned by list endpoints."""

    total: int = Field(..., ge=0, description="Items matching the query")
    total_pages: int = Field(..., ge=0)
    current_page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1)

    @staticmethod
    def meta(total: int, page: int, per_page: int) -> dict[str, int]:
        """Return the pagination fields for a page of ``per_page`` items."""
        return {
            "total": total,
            "total_pages": math.ceil(total / per_page) if per_page else 0,
            "current_page": page,
            "per_page": per_page,
        }


class Message(BaseModel):
    """Plain acknowledgement body."""

    message: str
