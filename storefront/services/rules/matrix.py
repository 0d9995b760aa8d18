"""Rule-type table: allowed filter fields, required filters and natural ordering.

The table is built once and exposed read-only; the validator and the query
builder receive it through their constructors.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from storefront.models.rule import RuleType, SortOrder

# Public filter field -> key of the product query document.
FILTER_FIELD_KEYS: Mapping[str, str] = MappingProxyType(
    {
        "category": "category_id",
        "brand": "brand_id",
        "price": "selling_price",
        "stock": "total_stock",
        "tags": "tags",
        "createdAt": "created_at",
        "lastSold": "last_sold",
        "discount": "discount_percent",
    }
)

DATE_FILTER_FIELDS = frozenset({"createdAt", "lastSold"})
NUMERIC_FILTER_FIELDS = frozenset({"price", "stock", "discount"})
LIST_FILTER_FIELDS = frozenset({"tags"})

# Public sort field -> key of the product query document.
SORT_FIELD_KEYS: Mapping[str, str] = MappingProxyType(
    {
        "createdAt": "created_at",
        "sellingPrice": "selling_price",
        "price": "selling_price",
        "discountedPrice": "discounted_price",
        "discountPercent": "discount_percent",
        "name": "name",
        "lastSold": "last_sold",
        "salesCount": "sales_count",
        "stock": "total_stock",
        "views": "views",
    }
)


@dataclass(frozen=True)
class RuleTypeSpec:
    allowed_fields: frozenset[str]
    required_fields: tuple[str, ...] = ()
    sort_by: str = "createdAt"
    sort_order: SortOrder = SortOrder.DESC


def _entry(
    *allowed: str,
    required: tuple[str, ...] = (),
    sort_by: str = "createdAt",
    sort_order: SortOrder = SortOrder.DESC,
) -> RuleTypeSpec:
    return RuleTypeSpec(frozenset(allowed), required, sort_by, sort_order)


RuleMatrix = Mapping[RuleType, RuleTypeSpec]

DEFAULT_RULE_MATRIX: RuleMatrix = MappingProxyType(
    {
        RuleType.NEW_ARRIVALS: _entry("createdAt", "tags"),
        RuleType.BEST_SELLERS: _entry("lastSold", "tags", sort_by="salesCount"),
        RuleType.TRENDING: _entry("lastSold", "tags", sort_by="lastSold"),
        RuleType.CLEARANCE_SALE: _entry("price", sort_by="discountPercent"),
        RuleType.HEAVY_DISCOUNT: _entry(
            "discount",
            "price",
            "tags",
            sort_by="discountedPrice",
            sort_order=SortOrder.ASC,
        ),
        RuleType.CATEGORY_BASED: _entry("category", required=("category",)),
        RuleType.PRICE_RANGE: _entry(
            "price",
            required=("price",),
            sort_by="sellingPrice",
            sort_order=SortOrder.ASC,
        ),
        RuleType.LOW_STOCK: _entry("stock", sort_by="stock", sort_order=SortOrder.ASC),
        RuleType.DEAD_STOCK: _entry(
            "lastSold",
            "stock",
            "tags",
            sort_order=SortOrder.ASC,
        ),
        RuleType.CUSTOM_QUERY: _entry(
            "category", "brand", "price", "stock", "tags", "createdAt", "lastSold"
        ),
        # Filters are ignored for explicit id lists.
        RuleType.MANUAL_SELECTION: _entry(),
    }
)
