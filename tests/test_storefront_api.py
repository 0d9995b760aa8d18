"""API tests for smart rule management and storefront rendering."""

from __future__ import annotations

import pytest

from storefront.models.page import StorefrontPage
from storefront.models.section import Section

ORG = "org-1"
HEADERS = {"X-Organization-Id": ORG}

PRICE_RULE = {
    "name": "Mid range",
    "rule_type": "price_range",
    "filters": [{"field": "price", "operator": "between", "value": 100, "value2": 500}],
    "limit": 5,
    "cache_duration": 10,
}


@pytest.fixture()
def stocked_catalog(catalog, make_product):
    catalog.add_products(
        make_product(selling_price=float(price), category_id="cat-shoes")
        for price in (50, 120, 240, 480, 900)
    )
    return catalog


@pytest.mark.asyncio
async def test_root_and_health(client):
    root = await client.get("/")
    health = await client.get("/health")

    assert root.status_code == 200
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["cache"] == "connected"


@pytest.mark.asyncio
async def test_validate_accepts_well_formed_rule(client):
    response = await client.post("/v1/smart-rules/validate", json=PRICE_RULE)

    assert response.status_code == 200
    assert response.json() == {"valid": True, "rule_type": "price_range"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"rule_type": "teleport"},
        {"rule_type": "new_arrivals", "filters": [{"field": "brand", "operator": "equals", "value": "x"}]},
        {"rule_type": "price_range", "filters": [{"field": "price", "operator": "between", "value": 1}]},
    ],
)
async def test_validate_rejects_malformed_rules_with_400(client, payload):
    response = await client.post("/v1/smart-rules/validate", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"]


@pytest.mark.asyncio
async def test_save_and_execute_rule(client, stocked_catalog, redis_client):
    saved = await client.put("/v1/smart-rules/rule-1", json=PRICE_RULE, headers=HEADERS)
    assert saved.status_code == 200
    assert saved.json()["organization_id"] == ORG

    first = await client.get("/v1/smart-rules/rule-1/products", headers=HEADERS)
    second = await client.get("/v1/smart-rules/rule-1/products", headers=HEADERS)

    assert first.status_code == 200
    assert first.json()["count"] == 3
    assert [p["price"]["original"] for p in first.json()["products"]] == [120.0, 240.0, 480.0]
    assert second.json() == first.json()

    cleared = await client.delete("/v1/smart-rules/rule-1/cache", headers=HEADERS)
    assert cleared.json()["removed"] == 1


@pytest.mark.asyncio
async def test_rules_are_tenant_scoped(client, stocked_catalog):
    await client.put("/v1/smart-rules/rule-1", json=PRICE_RULE, headers=HEADERS)

    response = await client.get(
        "/v1/smart-rules/rule-1/products", headers={"X-Organization-Id": "org-2"}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_missing_tenant_header_is_rejected(client):
    response = await client.get("/v1/smart-rules/rule-1/products")

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_save_invalid_rule_returns_400(client):
    payload = {**PRICE_RULE, "filters": []}

    response = await client.put("/v1/smart-rules/rule-1", json=payload, headers=HEADERS)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_save_rejects_non_numeric_price_before_persisting(client, catalog):
    payload = {
        **PRICE_RULE,
        "filters": [{"field": "price", "operator": "gte", "value": "cheap"}],
    }

    response = await client.put("/v1/smart-rules/rule-1", json=payload, headers=HEADERS)

    assert response.status_code == 400
    assert "expects a number" in response.json()["detail"]
    assert catalog.peek_rule("rule-1") is None


@pytest.mark.asyncio
async def test_delete_rule(client, stocked_catalog):
    await client.put("/v1/smart-rules/rule-1", json=PRICE_RULE, headers=HEADERS)

    deleted = await client.delete("/v1/smart-rules/rule-1", headers=HEADERS)
    missing = await client.delete("/v1/smart-rules/rule-1", headers=HEADERS)

    assert deleted.status_code == 204
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_preview_rule(client, stocked_catalog):
    response = await client.post(
        "/v1/smart-rules/preview?limit=2", json=PRICE_RULE, headers=HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["products"]) == 2
    assert body["estimated_results"] == 3


@pytest.mark.asyncio
async def test_hydrate_endpoint_flags_failed_sections(client, stocked_catalog):
    payload = {
        "organization_id": ORG,
        "sections": [
            {"id": "b", "type": "product_grid", "position": 1, "data_source": "smart", "smart_rule_id": "nope"},
            {"id": "a", "type": "hero_banner", "position": 0, "config": {"title": "Hi"}},
            {"id": "c", "type": "spacer", "position": 2, "is_active": False},
        ],
    }

    response = await client.post("/v1/storefront/hydrate", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert [s["id"] for s in body] == ["a", "b"]
    assert body[0]["data"] == {"title": "Hi"}
    assert body[1]["error"] is True
    assert body[1]["data"] == []


@pytest.mark.asyncio
async def test_render_page_and_count_views(client, stocked_catalog, task_runner):
    stocked_catalog.add_pages(
        [
            StorefrontPage(
                id="pg-home",
                organization_id=ORG,
                name="Home",
                slug="index",
                is_homepage=True,
                status="published",
                is_published=True,
                sections=[
                    Section(
                        id="nav",
                        type="navbar_simple",
                        position=0,
                        config={"menu_items": [{"label": "Deals", "url": "/deals"}]},
                    ),
                    Section(
                        id="cats",
                        type="category_grid",
                        position=1,
                        data_source="dynamic",
                        config={"show_product_count": True},
                    ),
                ],
            )
        ]
    )

    response = await client.get(f"/v1/storefront/{ORG}/pages/home")
    await task_runner.drain()

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "pg-home"
    nav, cats = body["sections"]
    assert [link["url"] for link in nav["data"]] == ["/deals", "/"]
    assert {c["id"]: c["product_count"] for c in cats["data"]} == {"cat-bags": 0, "cat-shoes": 5}
    assert stocked_catalog.get_page("pg-home").view_count == 1


@pytest.mark.asyncio
async def test_unknown_page_returns_404(client):
    response = await client.get(f"/v1/storefront/{ORG}/pages/nowhere")

    assert response.status_code == 404
