"""Category and brand master data."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

TaxonomyType = Literal["category", "brand"]


class TaxonomyEntry(BaseModel):
    id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    type: TaxonomyType
    name: str
    slug: str
    image_url: str | None = None
    sort_order: int = 0
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class CategoryCard(BaseModel):
    """Tile rendered by category grids."""

    id: str
    name: str
    slug: str
    image: str
    url: str
    product_count: int | None = Field(
        default=None,
        description="Live product count, only filled when the section asks for it",
    )
