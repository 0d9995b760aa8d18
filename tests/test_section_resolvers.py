"""Tests for the per-kind section resolvers and the dispatch table."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from storefront.models.location import Address, Branch
from storefront.models.page import StorefrontPage
from storefront.models.section import DataSource, Section, SectionKind
from storefront.services.hydration.resolvers import (
    CategorySectionResolver,
    LocationSectionResolver,
    NavigationSectionResolver,
    ProductSectionResolver,
    StaticSectionResolver,
    build_resolution_table,
)
from storefront.services.rules.engine import SmartRuleEngine

ORG = "org-1"


def _page(page_id, slug, *, homepage=False, published=True):
    return StorefrontPage(
        id=page_id,
        organization_id=ORG,
        name=slug.title(),
        slug=slug,
        is_homepage=homepage,
        status="published" if published else "draft",
        is_published=published,
    )


@pytest.fixture()
def engine(catalog, task_runner):
    return SmartRuleEngine(
        products=catalog, rules=catalog, taxonomy=catalog, task_runner=task_runner
    )


def test_table_covers_every_kind_and_source(engine, catalog):
    table = build_resolution_table(
        engine=engine, products=catalog, taxonomy=catalog, pages=catalog, branches=catalog
    )

    assert set(table) == {(kind, source) for kind in SectionKind for source in DataSource}
    assert isinstance(table[(SectionKind.CONTENT, DataSource.SMART)], StaticSectionResolver)
    assert isinstance(table[(SectionKind.PRODUCT, DataSource.STATIC)], StaticSectionResolver)
    assert isinstance(table[(SectionKind.PRODUCT, DataSource.MANUAL)], ProductSectionResolver)
    assert isinstance(table[(SectionKind.CATEGORY, DataSource.SMART)], ProductSectionResolver)
    assert isinstance(table[(SectionKind.CATEGORY, DataSource.DYNAMIC)], CategorySectionResolver)
    assert isinstance(table[(SectionKind.NAVIGATION, DataSource.STATIC)], NavigationSectionResolver)
    assert isinstance(table[(SectionKind.LOCATION, DataSource.DYNAMIC)], LocationSectionResolver)


@pytest.mark.asyncio
async def test_static_config_is_returned_unchanged():
    config = {"title": "Welcome", "slides": [{"image": "a.jpg"}]}
    section = Section(id="s1", type="hero_banner", config=config)

    data = await StaticSectionResolver().resolve(section, ORG)

    assert data == config
    data["slides"].append({"image": "b.jpg"})
    assert section.config["slides"] == [{"image": "a.jpg"}]


@pytest.mark.asyncio
async def test_product_section_dispatches_on_data_source():
    engine = AsyncMock(spec=SmartRuleEngine)
    resolver = ProductSectionResolver(engine)

    await resolver.resolve(
        Section(
            id="s1",
            type="product_grid",
            data_source="manual",
            manual_data={"product_ids": ["p1", "p2"]},
        ),
        ORG,
    )
    engine.execute_manual_selection.assert_awaited_once_with(["p1", "p2"], ORG)

    await resolver.resolve(
        Section(id="s2", type="product_slider", data_source="smart", smart_rule_id="rule-9"),
        ORG,
    )
    engine.execute_rule.assert_awaited_once_with("rule-9", ORG)

    inline = {"rule_type": "best_sellers", "limit": 4, "title": "Top picks"}
    await resolver.resolve(
        Section(id="s3", type="product_slider", data_source="smart", config=inline), ORG
    )
    engine.execute_ad_hoc.assert_awaited_once_with(inline, ORG)


@pytest.mark.asyncio
async def test_product_section_without_rule_falls_back_to_latest(catalog, make_product, engine):
    catalog.add_products([make_product() for _ in range(10)])
    section = Section(id="s1", type="product_grid", data_source="smart", config={"limit": 3})

    products = await ProductSectionResolver(engine).resolve(section, ORG)

    assert [p.id for p in products] == ["p1", "p2", "p3"]


@pytest.mark.asyncio
async def test_category_grid_without_counts(catalog):
    products = AsyncMock()
    resolver = CategorySectionResolver(catalog, products)
    section = Section(id="s1", type="category_grid", data_source="dynamic")

    cards = await resolver.resolve(section, ORG)

    assert [c.id for c in cards] == ["cat-bags", "cat-shoes"]
    assert cards[0].image == "assets/placeholder-category.jpg"
    assert cards[1].url == "/products?category=cat-shoes"
    assert all(card.product_count is None for card in cards)
    products.count_by_category.assert_not_awaited()


@pytest.mark.asyncio
async def test_category_grid_counts_are_opt_in(catalog, make_product):
    catalog.add_products(
        [make_product(category_id="cat-shoes"), make_product(category_id="cat-shoes")]
    )
    resolver = CategorySectionResolver(catalog, catalog)
    section = Section(
        id="s1",
        type="category_grid",
        data_source="dynamic",
        config={"show_product_count": True, "selected_categories": ["cat-shoes", "cat-bags"]},
    )

    cards = await resolver.resolve(section, ORG)

    assert {c.id: c.product_count for c in cards} == {"cat-bags": 0, "cat-shoes": 2}


@pytest.mark.asyncio
async def test_manual_category_grid_uses_manual_ids(catalog):
    resolver = CategorySectionResolver(catalog, catalog)
    section = Section(
        id="s1",
        type="category_grid",
        data_source="manual",
        manual_data={"category_ids": ["cat-shoes"]},
    )

    cards = await resolver.resolve(section, ORG)

    assert [c.name for c in cards] == ["Shoes"]
    assert await resolver.resolve(
        Section(id="s2", type="category_grid", data_source="manual"), ORG
    ) == []


@pytest.mark.asyncio
async def test_navigation_merge_prefers_manual_entries(catalog):
    catalog.add_pages(
        [
            _page("pg-home", "home", homepage=True),
            _page("pg-about", "about"),
            _page("pg-sale", "sale"),
            _page("pg-draft", "draft", published=False),
        ]
    )
    section = Section(
        id="nav",
        type="navbar_simple",
        config={
            "menu_items": [
                {"label": "Start", "url": "/", "icon": "house"},
                {"label": "Our story", "url": "/about"},
                {"label": "broken"},
            ]
        },
    )

    links = await NavigationSectionResolver(catalog).resolve(section, ORG)

    assert [(link.label, link.url) for link in links] == [
        ("Start", "/"),
        ("Our story", "/about"),
        ("Sale", "/sale"),
    ]
    assert links[0].model_extra == {"icon": "house"}
    assert links[2].is_dynamic is True


@pytest.mark.asyncio
async def test_location_section_lists_selected_branches(catalog):
    catalog.add_branches(
        [
            Branch(
                id="b1",
                organization_id=ORG,
                name="Main",
                is_main_branch=True,
                address=Address(street="1 High St", city="Pune"),
            ),
            Branch(id="b2", organization_id=ORG, name="Outlet"),
            Branch(id="b3", organization_id=ORG, name="Closed", is_deleted=True),
        ]
    )
    resolver = LocationSectionResolver(catalog)

    everything = await resolver.resolve(
        Section(id="m", type="map_locations", data_source="dynamic"), ORG
    )
    selected = await resolver.resolve(
        Section(
            id="m",
            type="map_locations",
            data_source="dynamic",
            config={"selected_branches": ["b1"]},
        ),
        ORG,
    )

    assert [b.id for b in everything] == ["b1", "b2"]
    assert [b.address for b in selected] == ["1 High St, Pune"]
    assert selected[0].is_main is True
