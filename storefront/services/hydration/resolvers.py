"""Per-kind section resolvers and the (kind, data source) dispatch table."""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from storefront.config import settings
from storefront.models.location import LocationCard
from storefront.models.page import NavigationLink
from storefront.models.product import ResolvedProduct
from storefront.models.rule import RuleType
from storefront.models.section import DataSource, Section, SectionKind
from storefront.models.taxonomy import CategoryCard, TaxonomyEntry
from storefront.services.rules.engine import SmartRuleEngine
from storefront.services.storage.repositories import (
    BranchRepository,
    PageStore,
    ProductRepository,
    TaxonomyRepository,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_CATEGORY_IMAGE = "assets/placeholder-category.jpg"
DEFAULT_CATEGORY_LIMIT = 12


class SectionResolver(ABC):
    @abstractmethod
    async def resolve(self, section: Section, organization_id: str) -> Any:
        """Return the data payload for ``section``."""


class StaticSectionResolver(SectionResolver):
    """Content sections carry their own data: the config is returned as-is."""

    async def resolve(self, section: Section, organization_id: str) -> dict[str, Any]:
        return copy.deepcopy(section.config)


class ProductSectionResolver(SectionResolver):
    def __init__(self, engine: SmartRuleEngine) -> None:
        self._engine = engine

    async def resolve(
        self, section: Section, organization_id: str
    ) -> list[ResolvedProduct]:
        if section.data_source is DataSource.MANUAL:
            return await self._engine.execute_manual_selection(
                section.manual_data.product_ids, organization_id
            )

        if section.smart_rule_id:
            return await self._engine.execute_rule(section.smart_rule_id, organization_id)
        if section.config.get("rule_type"):
            return await self._engine.execute_ad_hoc(section.config, organization_id)

        # No rule configured yet: show the latest products.
        limit = section.config.get("limit") or settings.MANUAL_FALLBACK_LIMIT
        return await self._engine.execute_ad_hoc(
            {"rule_type": RuleType.NEW_ARRIVALS, "limit": limit}, organization_id
        )


class CategorySectionResolver(SectionResolver):
    def __init__(self, taxonomy: TaxonomyRepository, products: ProductRepository) -> None:
        self._taxonomy = taxonomy
        self._products = products

    async def resolve(self, section: Section, organization_id: str) -> list[CategoryCard]:
        config = section.config
        if section.data_source is DataSource.MANUAL:
            category_ids = list(section.manual_data.category_ids)
        else:
            category_ids = list(config.get("selected_categories") or []) or None

        if category_ids == []:
            return []

        entries = await self._taxonomy.find_categories(
            organization_id,
            category_ids=category_ids,
            limit=config.get("limit") or DEFAULT_CATEGORY_LIMIT,
        )
        counts: Mapping[str, int] | None = None
        if config.get("show_product_count"):
            counts = await self._products.count_by_category(organization_id)
        return [self._card(entry, counts) for entry in entries]

    @staticmethod
    def _card(entry: TaxonomyEntry, counts: Mapping[str, int] | None) -> CategoryCard:
        return CategoryCard(
            id=entry.id,
            name=entry.name,
            slug=entry.slug,
            image=entry.image_url or PLACEHOLDER_CATEGORY_IMAGE,
            url=f"/products?category={entry.id}",
            product_count=counts.get(entry.id, 0) if counts is not None else None,
        )


class NavigationSectionResolver(SectionResolver):
    """Merge manual menu items with links to every published page.

    Manual entries come first and win on URL collisions.
    """

    def __init__(self, pages: PageStore) -> None:
        self._pages = pages

    async def resolve(self, section: Section, organization_id: str) -> list[NavigationLink]:
        links: list[NavigationLink] = []
        seen: set[str] = set()

        for item in section.config.get("menu_items") or []:
            try:
                link = NavigationLink.model_validate(item)
            except PydanticValidationError:
                logger.warning("Skipping malformed menu item in section %s", section.id)
                continue
            links.append(link)
            seen.add(link.url)

        for page in await self._pages.list_published_pages(organization_id):
            url = page.public_url
            if url in seen:
                continue
            seen.add(url)
            links.append(
                NavigationLink(
                    label=page.name, url=url, type="page", id=page.id, is_dynamic=True
                )
            )
        return links


class LocationSectionResolver(SectionResolver):
    def __init__(self, branches: BranchRepository) -> None:
        self._branches = branches

    async def resolve(self, section: Section, organization_id: str) -> list[LocationCard]:
        selected = section.config.get("selected_branches") or None
        branches = await self._branches.list_branches(organization_id, selected)
        return [
            LocationCard(
                id=branch.id,
                name=branch.name,
                is_main=branch.is_main_branch,
                phone=branch.phone_number,
                address=branch.address.one_line(),
                location=branch.location,
            )
            for branch in branches
        ]


ResolutionTable = Mapping[tuple[SectionKind, DataSource], SectionResolver]


def build_resolution_table(
    *,
    engine: SmartRuleEngine,
    products: ProductRepository,
    taxonomy: TaxonomyRepository,
    pages: PageStore,
    branches: BranchRepository,
) -> ResolutionTable:
    """Map every (kind, data source) pair to exactly one resolver."""

    static = StaticSectionResolver()
    product = ProductSectionResolver(engine)
    category = CategorySectionResolver(taxonomy, products)
    navigation = NavigationSectionResolver(pages)
    location = LocationSectionResolver(branches)

    table: dict[tuple[SectionKind, DataSource], SectionResolver] = {}
    for source in DataSource:
        table[(SectionKind.CONTENT, source)] = static
        table[(SectionKind.NAVIGATION, source)] = navigation
        if source is DataSource.STATIC:
            table[(SectionKind.PRODUCT, source)] = static
            table[(SectionKind.LOCATION, source)] = static
        else:
            table[(SectionKind.PRODUCT, source)] = product
            table[(SectionKind.LOCATION, source)] = location
    table[(SectionKind.CATEGORY, DataSource.STATIC)] = static
    table[(SectionKind.CATEGORY, DataSource.MANUAL)] = category
    table[(SectionKind.CATEGORY, DataSource.DYNAMIC)] = category
    table[(SectionKind.CATEGORY, DataSource.SMART)] = product
    return MappingProxyType(table)
