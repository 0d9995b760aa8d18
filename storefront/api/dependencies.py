"""Dependency wiring shared by the API routers."""

from __future__ import annotations

from typing import Annotated

import redis.asyncio as redis
from fastapi import Depends, Header, HTTPException

from storefront.config import settings
from storefront.errors import StorefrontError
from storefront.services.background import DetachedTaskRunner, get_task_runner
from storefront.services.cache.redis_client import get_redis_client
from storefront.services.cache.rule_cache import RuleCache
from storefront.services.hydration.orchestrator import HydrationOrchestrator
from storefront.services.hydration.resolvers import build_resolution_table
from storefront.services.pages.page_service import StorefrontPageService
from storefront.services.rules.engine import SmartRuleEngine
from storefront.services.rules.validator import FilterValidator
from storefront.services.storage.memory import InMemoryCatalog, get_catalog

CatalogDependency = Annotated[InMemoryCatalog, Depends(get_catalog)]
RedisDependency = Annotated[redis.Redis, Depends(get_redis_client)]
TaskRunnerDependency = Annotated[DetachedTaskRunner, Depends(get_task_runner)]


def get_rule_cache(client: RedisDependency) -> RuleCache | None:
    if not settings.RULE_CACHE_ENABLED:
        return None
    return RuleCache(client)


def get_filter_validator() -> FilterValidator:
    return FilterValidator()


def get_smart_rule_engine(
    catalog: CatalogDependency,
    cache: Annotated[RuleCache | None, Depends(get_rule_cache)],
    validator: Annotated[FilterValidator, Depends(get_filter_validator)],
    task_runner: TaskRunnerDependency,
) -> SmartRuleEngine:
    return SmartRuleEngine(
        products=catalog,
        rules=catalog,
        taxonomy=catalog,
        cache=cache,
        validator=validator,
        task_runner=task_runner,
        adhoc_cache_ttl=(
            settings.ADHOC_CACHE_TTL_SECONDS if settings.ADHOC_CACHE_ENABLED else None
        ),
    )


EngineDependency = Annotated[SmartRuleEngine, Depends(get_smart_rule_engine)]


def get_hydration_orchestrator(
    catalog: CatalogDependency, engine: EngineDependency
) -> HydrationOrchestrator:
    table = build_resolution_table(
        engine=engine,
        products=catalog,
        taxonomy=catalog,
        pages=catalog,
        branches=catalog,
    )
    return HydrationOrchestrator(
        table, timeout_seconds=settings.SECTION_RESOLVE_TIMEOUT_SECONDS
    )


OrchestratorDependency = Annotated[
    HydrationOrchestrator, Depends(get_hydration_orchestrator)
]


def get_page_service(
    catalog: CatalogDependency,
    orchestrator: OrchestratorDependency,
    task_runner: TaskRunnerDependency,
) -> StorefrontPageService:
    return StorefrontPageService(catalog, orchestrator, task_runner)


PageServiceDependency = Annotated[StorefrontPageService, Depends(get_page_service)]


def get_organization_id(
    x_organization_id: Annotated[str, Header(alias="X-Organization-Id", min_length=1)],
) -> str:
    """Tenant id, resolved upstream and forwarded as a header."""

    return x_organization_id


OrganizationDependency = Annotated[str, Depends(get_organization_id)]


def http_error(exc: StorefrontError) -> HTTPException:
    """Translate a domain error into the matching HTTP response."""

    return HTTPException(status_code=exc.status_code, detail=exc.message)
