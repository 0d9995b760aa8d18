"""Storefront page schemas."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.section import HydratedSection, Section


class StorefrontPage(BaseModel):
    """Persisted page definition: an ordered list of sections."""

    id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    name: str
    slug: str
    page_type: str = "custom"
    is_homepage: bool = False
    status: Literal["draft", "published", "archived"] = "draft"
    is_published: bool = False
    is_deleted: bool = False
    sections: list[Section] = Field(default_factory=list)
    seo: dict[str, Any] = Field(default_factory=dict)
    view_count: int = Field(default=0, ge=0)
    last_viewed_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_live(self) -> bool:
        return self.status == "published" and self.is_published and not self.is_deleted

    @property
    def public_url(self) -> str:
        return "/" if self.is_homepage else f"/{self.slug}"


class NavigationLink(BaseModel):
    """Menu entry; manually configured entries may carry extra display fields."""

    model_config = ConfigDict(extra="allow")

    label: str
    url: str
    type: str = "custom"
    id: str | None = None
    is_dynamic: bool = False


class RenderedPage(BaseModel):
    """Published page with every active section hydrated."""

    id: str
    name: str
    slug: str
    page_type: str
    sections: list[HydratedSection] = Field(default_factory=list)
    seo: dict[str, Any] = Field(default_factory=dict)
    view_count: int = 0
