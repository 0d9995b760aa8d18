"""Smart rule execution: validation, query building, caching and shaping."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from storefront.config import settings
from storefront.errors import NotFoundError
from storefront.models.product import ResolvedProduct
from storefront.models.rule import RuleConfig, RulePreview, RuleType, SmartRule
from storefront.models.taxonomy import TaxonomyType
from storefront.services.background import DetachedTaskRunner
from storefront.services.cache.rule_cache import RuleCache
from storefront.services.rules.query_builder import RuleQueryBuilder
from storefront.services.rules.transform import transform_products
from storefront.services.rules.validator import FilterValidator
from storefront.services.storage.repositories import (
    ProductRepository,
    RuleStore,
    TaxonomyRepository,
)

logger = logging.getLogger(__name__)

RuleInput = RuleConfig | Mapping[str, Any]

_TAXONOMY_FIELDS: dict[str, TaxonomyType] = {"category": "category", "brand": "brand"}


class SmartRuleEngine:
    """Resolve saved or inline smart rules to public product cards.

    Saved-rule results are cached per tenant, rule and parameters. Inline rules
    are only cached when an ad-hoc TTL is configured. Execution statistics are
    written in the background and never delay or fail the caller.
    """

    def __init__(
        self,
        *,
        products: ProductRepository,
        rules: RuleStore,
        cache: RuleCache | None = None,
        validator: FilterValidator | None = None,
        query_builder: RuleQueryBuilder | None = None,
        task_runner: DetachedTaskRunner | None = None,
        adhoc_cache_ttl: int | None = None,
        taxonomy: TaxonomyRepository | None = None,
    ) -> None:
        self._products = products
        self._rules = rules
        self._taxonomy = taxonomy
        self._cache = cache
        self._validator = validator or FilterValidator()
        self._query_builder = query_builder or RuleQueryBuilder()
        self._tasks = task_runner or DetachedTaskRunner()
        self._adhoc_cache_ttl = adhoc_cache_ttl

    async def execute_rule(
        self, rule_id: str, organization_id: str, *, limit: int | None = None
    ) -> list[ResolvedProduct]:
        """Run a saved rule, serving from cache while the entry is fresh.

        Raises:
            NotFoundError: the rule does not exist, is inactive or belongs to
                another organization.
        """

        cache_key = None
        if self._cache is not None:
            params = {"limit": limit} if limit else None
            cache_key = self._cache.rule_key(organization_id, rule_id, params)
            cached = await self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Rule cache hit for %s", rule_id)
                return cached

        rule = await self._rules.get_rule(organization_id, rule_id)
        if rule is None:
            raise NotFoundError(f"Smart rule {rule_id} not found")

        config = rule.as_config()
        if limit:
            config = config.model_copy(update={"limit": limit})
        products = await self._run(config, organization_id)

        if cache_key is not None:
            minutes = rule.cache_duration or settings.RULE_CACHE_DEFAULT_MINUTES
            await self._cache.set(cache_key, products, minutes * 60)

        self._tasks.spawn(
            self._rules.record_execution(rule_id), name=f"rule-stats:{rule_id}"
        )
        logger.info(
            "Executed smart rule %s",
            rule_id,
            extra={"organization_id": organization_id, "results": len(products)},
        )
        return products

    async def execute_ad_hoc(
        self, config: RuleInput, organization_id: str
    ) -> list[ResolvedProduct]:
        """Validate and run an inline rule configuration."""

        rule = self._validator.validate(config)

        cache_key = None
        if self._cache is not None and self._adhoc_cache_ttl:
            cache_key = self._cache.adhoc_key(organization_id, rule)
            cached = await self._cache.get(cache_key)
            if cached is not None:
                return cached

        products = await self._run(rule, organization_id)
        if cache_key is not None:
            await self._cache.set(cache_key, products, self._adhoc_cache_ttl)
        return products

    async def execute_manual_selection(
        self, product_ids: Sequence[str], organization_id: str
    ) -> list[ResolvedProduct]:
        if not product_ids:
            return []
        records = await self._products.find_by_ids(organization_id, product_ids)
        missing = len(set(product_ids)) - len(records)
        if missing:
            logger.debug("Manual selection skipped %s unknown products", missing)
        return transform_products(records)

    async def preview_rule(
        self, config: RuleInput, organization_id: str, *, limit: int = 5
    ) -> RulePreview:
        """Live, uncached run used by the page builder to preview a rule."""

        rule = self._validator.validate(config)
        started = time.perf_counter()
        if rule.rule_type is RuleType.MANUAL_SELECTION:
            products = await self.execute_manual_selection(rule.product_ids, organization_id)
            total = len(products)
            products = products[:limit]
        else:
            rule = await self._resolve_taxonomy_names(rule, organization_id)
            query = self._query_builder.build(
                rule.model_copy(update={"limit": limit}), organization_id
            )
            records, total = await asyncio.gather(
                self._products.find(query), self._products.count(query)
            )
            products = transform_products(records)
        elapsed_ms = (time.perf_counter() - started) * 1000
        return RulePreview(
            products=products,
            estimated_results=total,
            execution_time_ms=round(elapsed_ms, 3),
        )

    async def save_rule(self, rule: SmartRule) -> SmartRule:
        """Validate, persist and invalidate cached results of a rule."""

        self._validator.validate(rule)
        saved = await self._rules.save_rule(rule)
        await self.clear_rule_cache(saved.id, saved.organization_id)
        return saved

    async def delete_rule(self, rule_id: str, organization_id: str) -> None:
        if not await self._rules.delete_rule(organization_id, rule_id):
            raise NotFoundError(f"Smart rule {rule_id} not found")
        await self.clear_rule_cache(rule_id, organization_id)

    async def clear_rule_cache(self, rule_id: str, organization_id: str) -> int:
        if self._cache is None:
            return 0
        return await self._cache.invalidate_rule(organization_id, rule_id)

    async def _resolve_taxonomy_names(
        self, rule: RuleConfig, organization_id: str
    ) -> RuleConfig:
        """Swap category/brand names for their ids.

        Values that match no taxonomy entry are kept as-is and simply match
        nothing, so an unknown category yields an empty result.
        """

        if self._taxonomy is None:
            return rule

        filters = []
        changed = False
        for rule_filter in rule.filters:
            taxonomy_type = _TAXONOMY_FIELDS.get(rule_filter.field)
            if taxonomy_type is None:
                filters.append(rule_filter)
                continue
            many = isinstance(rule_filter.value, list)
            values = rule_filter.value if many else [rule_filter.value]
            resolved = []
            for value in values:
                entry = None
                if isinstance(value, str):
                    entry = await self._taxonomy.find_by_name(
                        organization_id, taxonomy_type, value
                    )
                resolved.append(entry.id if entry is not None else value)
            if resolved != values:
                changed = True
                rule_filter = rule_filter.model_copy(
                    update={"value": resolved if many else resolved[0]}
                )
            filters.append(rule_filter)
        return rule.model_copy(update={"filters": filters}) if changed else rule

    async def _run(self, rule: RuleConfig, organization_id: str) -> list[ResolvedProduct]:
        if rule.rule_type is RuleType.MANUAL_SELECTION:
            return await self.execute_manual_selection(rule.product_ids, organization_id)
        rule = await self._resolve_taxonomy_names(rule, organization_id)
        query = self._query_builder.build(rule, organization_id)
        records = await self._products.find(query)
        return transform_products(records)
