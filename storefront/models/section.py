"""Page section schemas and their hydrated counterpart."""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SectionType(StrEnum):
    # Hero
    HERO_BANNER = "hero_banner"
    VIDEO_HERO = "video_hero"
    # Commerce
    PRODUCT_SLIDER = "product_slider"
    PRODUCT_GRID = "product_grid"
    PRODUCT_LISTING = "product_listing"
    FEATURED_PRODUCT = "featured_product"
    CATEGORY_GRID = "category_grid"
    # Content
    TEXT_CONTENT = "text_content"
    SPLIT_IMAGE_TEXT = "split_image_text"
    FEATURE_GRID = "feature_grid"
    FAQ_ACCORDION = "faq_accordion"
    FAQ_SECTION = "faq_section"
    BLOG_FEED = "blog_feed"
    IMAGE_GALLERY = "image_gallery"
    VIDEO_SECTION = "video_section"
    # Marketing
    CTA_BANNER = "cta_banner"
    SOCIAL_PROOF = "social_proof"
    NEWSLETTER_SIGNUP = "newsletter_signup"
    COUNTDOWN_TIMER = "countdown_timer"
    PRICING_TABLE = "pricing_table"
    STATS_COUNTER = "stats_counter"
    TESTIMONIAL_SLIDER = "testimonial_slider"
    LOGO_CLOUD = "logo_cloud"
    INSTAGRAM_FEED = "instagram_feed"
    # Utility
    MAP_LOCATIONS = "map_locations"
    CONTACT_FORM = "contact_form"
    DIVIDER = "divider"
    SPACER = "spacer"
    # Navigation
    NAVBAR_SIMPLE = "navbar_simple"
    NAVBAR_MEGA = "navbar_mega"
    FOOTER_SIMPLE = "footer_simple"
    FOOTER_COMPLEX = "footer_complex"


class SectionKind(StrEnum):
    """Resolution family a section type belongs to."""

    PRODUCT = "product"
    CATEGORY = "category"
    NAVIGATION = "navigation"
    LOCATION = "location"
    CONTENT = "content"


class DataSource(StrEnum):
    STATIC = "static"
    MANUAL = "manual"
    SMART = "smart"
    DYNAMIC = "dynamic"


_SPECIAL_KINDS = {
    SectionType.PRODUCT_SLIDER: SectionKind.PRODUCT,
    SectionType.PRODUCT_GRID: SectionKind.PRODUCT,
    SectionType.PRODUCT_LISTING: SectionKind.PRODUCT,
    SectionType.FEATURED_PRODUCT: SectionKind.PRODUCT,
    SectionType.CATEGORY_GRID: SectionKind.CATEGORY,
    SectionType.NAVBAR_SIMPLE: SectionKind.NAVIGATION,
    SectionType.NAVBAR_MEGA: SectionKind.NAVIGATION,
    SectionType.MAP_LOCATIONS: SectionKind.LOCATION,
}

SECTION_KINDS: MappingProxyType[SectionType, SectionKind] = MappingProxyType(
    {
        section_type: _SPECIAL_KINDS.get(section_type, SectionKind.CONTENT)
        for section_type in SectionType
    }
)


class ManualData(BaseModel):
    """Hand-picked references configured in the page builder."""

    model_config = ConfigDict(frozen=True)

    product_ids: list[str] = Field(default_factory=list)
    category_ids: list[str] = Field(default_factory=list)
    image_urls: list[str] = Field(default_factory=list)


class Section(BaseModel):
    """One configurable block of a storefront page. Read-only to hydration."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    type: SectionType
    position: int = Field(default=0, ge=0)
    config: dict[str, Any] = Field(default_factory=dict)
    data_source: DataSource = DataSource.STATIC
    smart_rule_id: str | None = None
    manual_data: ManualData = Field(default_factory=ManualData)
    is_active: bool = True

    @property
    def kind(self) -> SectionKind:
        return SECTION_KINDS[self.type]


class HydratedSection(Section):
    """Fresh per-request record: the section plus its resolved data."""

    data: Any = None
    error: bool = False

    @classmethod
    def from_section(
        cls, section: Section, data: Any, *, error: bool = False
    ) -> HydratedSection:
        return cls(**section.model_dump(), data=data, error=error)


class HydrateRequest(BaseModel):
    """Ad-hoc hydration of a section list, used by the page-builder preview."""

    organization_id: str = Field(..., min_length=1)
    sections: list[Section] = Field(default_factory=list)
