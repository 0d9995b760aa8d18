"""Product domain models: raw catalog records and the public DTO."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

StockStatus = Literal["Out of Stock", "Low Stock", "In Stock"]


class TaxonomyRef(BaseModel):
    """Category or brand reference embedded in a catalog record."""

    id: str
    name: str
    slug: str | None = None


class InventoryLevel(BaseModel):
    """Quantity held at one fulfillment location."""

    branch_id: str | None = None
    quantity: int = 0


class ProductRecord(BaseModel):
    """Raw catalog record as returned by the product repository."""

    id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    name: str
    slug: str
    sku: str | None = None
    images: list[str] = Field(default_factory=list)
    category_id: str | None = None
    brand_id: str | None = None
    category: TaxonomyRef | None = None
    brand: TaxonomyRef | None = None
    selling_price: float = Field(..., ge=0)
    discounted_price: float | None = Field(default=None, ge=0)
    inventory: list[InventoryLevel] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_sold: datetime | None = None
    sales_count: int = Field(default=0, ge=0)
    views: int = Field(default=0, ge=0)
    is_active: bool = True

    @property
    def total_stock(self) -> int:
        """Quantity summed across every fulfillment location."""
        return sum(level.quantity or 0 for level in self.inventory)

    @property
    def discount_percent(self) -> float | None:
        if not self.discounted_price or not self.selling_price:
            return None
        return (self.selling_price - self.discounted_price) / self.selling_price * 100

    def query_view(self) -> dict[str, Any]:
        """Flat document the query predicates are evaluated against."""
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "is_active": self.is_active,
            "name": self.name,
            "slug": self.slug,
            "category_id": self.category_id,
            "brand_id": self.brand_id,
            "selling_price": self.selling_price,
            "discounted_price": self.discounted_price,
            "discount_percent": self.discount_percent,
            "total_stock": self.total_stock,
            "tags": list(self.tags),
            "created_at": self.created_at,
            "last_sold": self.last_sold,
            "sales_count": self.sales_count,
            "views": self.views,
        }


class PriceInfo(BaseModel):
    original: float
    discounted: float | None = None
    current: float
    has_discount: bool
    discount_percentage: int = 0
    discount_label: str | None = None
    currency: str


class StockInfo(BaseModel):
    available: bool
    quantity: int
    status: StockStatus


class ResolvedProduct(BaseModel):
    """Public product card, safe to expose on the storefront."""

    id: str
    name: str
    slug: str
    sku: str | None = None
    image: str | None = None
    images: list[str] = Field(default_factory=list)
    category: str | None = None
    brand: str | None = None
    price: PriceInfo
    stock: StockInfo
    tags: list[str] = Field(default_factory=list)
    url: str
