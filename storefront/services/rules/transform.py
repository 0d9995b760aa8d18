"""Shape raw catalog records into public product cards."""

from __future__ import annotations

import math
from collections.abc import Iterable

from storefront.config import settings
from storefront.models.product import (
    PriceInfo,
    ProductRecord,
    ResolvedProduct,
    StockInfo,
    StockStatus,
)


def _price_info(record: ProductRecord, currency: str) -> PriceInfo:
    original = record.selling_price
    discounted = record.discounted_price
    has_discount = bool(discounted) and discounted < original
    percentage = (
        math.floor((original - discounted) / original * 100 + 0.5) if has_discount else 0
    )
    return PriceInfo(
        original=original,
        discounted=discounted,
        current=discounted if has_discount else original,
        has_discount=has_discount,
        discount_percentage=percentage,
        discount_label=f"{percentage}% OFF" if has_discount else None,
        currency=currency,
    )


def _stock_info(record: ProductRecord, low_below: int) -> StockInfo:
    quantity = record.total_stock
    status: StockStatus
    if quantity <= 0:
        status = "Out of Stock"
    elif quantity < low_below:
        status = "Low Stock"
    else:
        status = "In Stock"
    return StockInfo(available=quantity > 0, quantity=quantity, status=status)


def transform_product(
    record: ProductRecord,
    *,
    currency: str | None = None,
    low_stock_below: int | None = None,
) -> ResolvedProduct:
    """Pure function of the record: identical input yields identical output."""

    return ResolvedProduct(
        id=record.id,
        name=record.name,
        slug=record.slug,
        sku=record.sku,
        image=record.images[0] if record.images else None,
        images=list(record.images),
        category=record.category.name if record.category else None,
        brand=record.brand.name if record.brand else None,
        price=_price_info(record, currency or settings.DEFAULT_CURRENCY),
        stock=_stock_info(
            record,
            low_stock_below if low_stock_below is not None else settings.STOCK_STATUS_LOW_BELOW,
        ),
        tags=list(record.tags),
        url=f"/products/{record.slug}",
    )


def transform_products(records: Iterable[ProductRecord]) -> list[ResolvedProduct]:
    return [transform_product(record) for record in records]
