"""Pytest configuration and fixtures for the storefront composition service."""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from fakeredis import aioredis as fakeredis
from httpx import ASGITransport, AsyncClient

from storefront.models.product import InventoryLevel, ProductRecord
from storefront.models.taxonomy import TaxonomyEntry
from storefront.services.background import DetachedTaskRunner, get_task_runner
from storefront.services.cache.redis_client import get_redis_client
from storefront.services.cache.rule_cache import RuleCache
from storefront.services.storage.memory import InMemoryCatalog, get_catalog

ORG = "org-1"
NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "asyncio: marks tests as async tests")


@pytest.fixture()
def make_product():
    """Factory building catalog records with sensible defaults."""

    counter = {"n": 0}

    def _make(**overrides) -> ProductRecord:
        counter["n"] += 1
        n = counter["n"]
        stock = overrides.pop("stock", 20)
        fields = {
            "id": f"p{n}",
            "organization_id": ORG,
            "name": f"Product {n}",
            "slug": f"product-{n}",
            "sku": f"SKU-{n}",
            "images": [f"https://cdn.test/p{n}.jpg"],
            "selling_price": 100.0,
            "inventory": [InventoryLevel(branch_id="b1", quantity=stock)],
            "created_at": NOW - timedelta(days=n),
        }
        fields.update(overrides)
        return ProductRecord(**fields)

    return _make


@pytest.fixture()
def catalog():
    """Fresh in-memory catalog with a couple of categories."""

    store = InMemoryCatalog()
    store.add_taxonomy(
        [
            TaxonomyEntry(
                id="cat-shoes",
                organization_id=ORG,
                type="category",
                name="Shoes",
                slug="shoes",
                sort_order=1,
                image_url="https://cdn.test/shoes.jpg",
            ),
            TaxonomyEntry(
                id="cat-bags",
                organization_id=ORG,
                type="category",
                name="Bags",
                slug="bags",
                sort_order=0,
            ),
            TaxonomyEntry(
                id="brand-acme",
                organization_id=ORG,
                type="brand",
                name="Acme",
                slug="acme",
            ),
        ]
    )
    return store


@pytest_asyncio.fixture()
async def task_runner():
    runner = DetachedTaskRunner()
    yield runner
    await runner.drain()


@pytest_asyncio.fixture()
async def redis_client():
    """Provide a fake Redis client for each test."""
    from storefront.main import app

    client = fakeredis.FakeRedis(decode_responses=True)
    app.dependency_overrides[get_redis_client] = lambda: client
    try:
        yield client
    finally:
        await client.flushdb()
        await client.aclose()
        app.dependency_overrides.pop(get_redis_client, None)


@pytest.fixture()
def rule_cache(redis_client):
    return RuleCache(redis_client, prefix="test_rules")


@pytest_asyncio.fixture()
async def client(redis_client, catalog, task_runner):
    """Return an HTTPX async client pointing at the FastAPI app."""
    from storefront.main import app

    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_task_runner] = lambda: task_runner
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as test_client:
            yield test_client
    finally:
        await task_runner.drain()
        app.dependency_overrides.pop(get_catalog, None)
        app.dependency_overrides.pop(get_task_runner, None)
