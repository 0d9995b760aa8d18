"""Smart rule schemas: rule types, filters, ad-hoc and persisted rules."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.product import ResolvedProduct


class RuleType(StrEnum):
    """Closed set of product-selection strategies."""

    NEW_ARRIVALS = "new_arrivals"
    BEST_SELLERS = "best_sellers"
    TRENDING = "trending"
    CLEARANCE_SALE = "clearance_sale"
    HEAVY_DISCOUNT = "heavy_discount"
    CATEGORY_BASED = "category_based"
    PRICE_RANGE = "price_range"
    LOW_STOCK = "low_stock"
    DEAD_STOCK = "dead_stock"
    CUSTOM_QUERY = "custom_query"
    MANUAL_SELECTION = "manual_selection"


class FilterOperator(StrEnum):
    EQUALS = "equals"
    IN = "in"
    GTE = "gte"
    LTE = "lte"
    BETWEEN = "between"
    CONTAINS = "contains"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class RuleFilter(BaseModel):
    """One field/operator/value constraint inside a rule."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(..., min_length=1, description="Public filter field name")
    operator: FilterOperator
    value: Any = None
    value2: Any = Field(
        default=None,
        description="Upper bound, required by the 'between' operator",
    )


class RuleConfig(BaseModel):
    """Inline (ad-hoc) rule configuration, also the base of persisted rules."""

    model_config = ConfigDict(frozen=True)

    rule_type: RuleType
    filters: list[RuleFilter] = Field(default_factory=list)
    sort_by: str | None = None
    sort_order: SortOrder | None = None
    limit: int | None = Field(default=None, ge=1)
    product_ids: list[str] = Field(
        default_factory=list,
        description="Explicit product ids, only used by manual_selection",
    )

    def filter_for(self, field: str) -> RuleFilter | None:
        """Return the first filter targeting ``field``."""
        return next((f for f in self.filters if f.field == field), None)

    def as_config(self) -> RuleConfig:
        """Strip persistence metadata, keeping only what drives the query."""
        return RuleConfig(
            rule_type=self.rule_type,
            filters=list(self.filters),
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            limit=self.limit,
            product_ids=list(self.product_ids),
        )


class SmartRule(RuleConfig):
    """Persisted, tenant-scoped rule referenced by sections via ``smart_rule_id``."""

    id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    cache_duration: int | None = Field(
        default=None,
        ge=1,
        description="Cache lifetime in minutes",
    )
    is_active: bool = True
    execution_count: int = Field(default=0, ge=0)
    last_executed_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class RulePreview(BaseModel):
    """Result of a live, uncached rule run from the page builder."""

    products: list[ResolvedProduct] = Field(default_factory=list)
    estimated_results: int = Field(..., ge=0)
    execution_time_ms: float = Field(..., ge=0)
