"""In-memory catalog backing every repository interface.

Used by the API out of the box and by the test-suite; a database-backed
implementation only has to satisfy the interfaces in ``repositories``.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from threading import RLock
from typing import Any

from storefront.models.location import Branch
from storefront.models.page import StorefrontPage
from storefront.models.product import ProductRecord, TaxonomyRef
from storefront.models.rule import SmartRule
from storefront.models.taxonomy import TaxonomyEntry, TaxonomyType
from storefront.services.rules.query import RuleQuery, SortKey
from storefront.services.storage.repositories import (
    BranchRepository,
    PageStore,
    ProductRepository,
    RuleStore,
    TaxonomyRepository,
)

logger = logging.getLogger(__name__)


def _sort_documents(
    rows: list[tuple[dict[str, Any], ProductRecord]], sort: Sequence[SortKey]
) -> None:
    # Stable multi-key sort, applied least significant key first; None sorts last.
    for key in reversed(sort):
        def sort_value(row: tuple[dict[str, Any], ProductRecord], field: str = key.field):
            value = row[0].get(field)
            missing = value is None
            return (not missing if key.descending else missing, 0 if missing else value)

        rows.sort(key=sort_value, reverse=key.descending)


class InMemoryCatalog(
    ProductRepository, TaxonomyRepository, PageStore, RuleStore, BranchRepository
):
    """Thread-safe in-memory store for products, taxonomy, pages, rules and branches."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._products: dict[str, ProductRecord] = {}
        self._taxonomy: dict[str, TaxonomyEntry] = {}
        self._pages: dict[str, StorefrontPage] = {}
        self._rules: dict[str, SmartRule] = {}
        self._branches: dict[str, Branch] = {}

    # Seeding

    def add_products(self, records: Iterable[ProductRecord]) -> None:
        with self._lock:
            for record in records:
                self._products[record.id] = record

    def add_taxonomy(self, entries: Iterable[TaxonomyEntry]) -> None:
        with self._lock:
            for entry in entries:
                self._taxonomy[entry.id] = entry

    def add_pages(self, pages: Iterable[StorefrontPage]) -> None:
        with self._lock:
            for page in pages:
                self._pages[page.id] = page

    def add_branches(self, branches: Iterable[Branch]) -> None:
        with self._lock:
            for branch in branches:
                self._branches[branch.id] = branch

    def get_page(self, page_id: str) -> StorefrontPage | None:
        with self._lock:
            return self._pages.get(page_id)

    def clear(self) -> None:
        with self._lock:
            self._products.clear()
            self._taxonomy.clear()
            self._pages.clear()
            self._rules.clear()
            self._branches.clear()

    def _with_refs(self, record: ProductRecord) -> ProductRecord:
        updates: dict[str, TaxonomyRef] = {}
        for attr, ref_id in (("category", record.category_id), ("brand", record.brand_id)):
            entry = self._taxonomy.get(ref_id) if ref_id else None
            if getattr(record, attr) is None and entry is not None:
                updates[attr] = TaxonomyRef(id=entry.id, name=entry.name, slug=entry.slug)
        return record.model_copy(update=updates) if updates else record

    def _matching(self, query: RuleQuery) -> list[tuple[dict[str, Any], ProductRecord]]:
        with self._lock:
            records = list(self._products.values())
        rows = [(record.query_view(), record) for record in records]
        return [row for row in rows if query.predicate.matches(row[0])]

    # ProductRepository

    async def find(self, query: RuleQuery) -> list[ProductRecord]:
        rows = self._matching(query)
        _sort_documents(rows, query.sort)
        with self._lock:
            return [self._with_refs(record) for _, record in rows[: query.limit]]

    async def count(self, query: RuleQuery) -> int:
        return len(self._matching(query))

    async def find_by_ids(
        self, organization_id: str, product_ids: Sequence[str]
    ) -> list[ProductRecord]:
        wanted = set(product_ids)
        with self._lock:
            return [
                self._with_refs(record)
                for record in self._products.values()
                if record.id in wanted
                and record.organization_id == organization_id
                and record.is_active
            ]

    async def count_by_category(self, organization_id: str) -> dict[str, int]:
        with self._lock:
            counts = Counter(
                record.category_id
                for record in self._products.values()
                if record.organization_id == organization_id
                and record.is_active
                and record.category_id
            )
        return dict(counts)

    # TaxonomyRepository

    async def find_categories(
        self,
        organization_id: str,
        *,
        category_ids: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[TaxonomyEntry]:
        with self._lock:
            entries = [
                entry
                for entry in self._taxonomy.values()
                if entry.organization_id == organization_id
                and entry.type == "category"
                and entry.is_active
                and (category_ids is None or entry.id in category_ids)
            ]
        entries.sort(key=lambda entry: entry.created_at, reverse=True)
        entries.sort(key=lambda entry: entry.sort_order)
        return entries[:limit] if limit else entries

    async def find_by_name(
        self, organization_id: str, taxonomy_type: TaxonomyType, name: str
    ) -> TaxonomyEntry | None:
        needle = name.strip().lower()
        with self._lock:
            return next(
                (
                    entry
                    for entry in self._taxonomy.values()
                    if entry.organization_id == organization_id
                    and entry.type == taxonomy_type
                    and needle in (entry.name.lower(), entry.slug.lower())
                ),
                None,
            )

    # PageStore

    async def list_published_pages(self, organization_id: str) -> list[StorefrontPage]:
        with self._lock:
            pages = [
                page
                for page in self._pages.values()
                if page.organization_id == organization_id and page.is_live
            ]
        pages.sort(key=lambda page: page.created_at)
        pages.sort(key=lambda page: not page.is_homepage)
        return pages

    async def get_published_page(
        self, organization_id: str, slug: str
    ) -> StorefrontPage | None:
        pages = await self.list_published_pages(organization_id)
        return next((page for page in pages if page.slug == slug), None)

    async def get_homepage(self, organization_id: str) -> StorefrontPage | None:
        pages = await self.list_published_pages(organization_id)
        return next((page for page in pages if page.is_homepage), None)

    async def increment_view_count(self, page_id: str) -> None:
        with self._lock:
            page = self._pages.get(page_id)
            if page is None:
                logger.warning("View count skipped; page %s not found", page_id)
                return
            self._pages[page_id] = page.model_copy(
                update={
                    "view_count": page.view_count + 1,
                    "last_viewed_at": datetime.now(UTC),
                }
            )

    # RuleStore

    async def get_rule(self, organization_id: str, rule_id: str) -> SmartRule | None:
        with self._lock:
            rule = self._rules.get(rule_id)
        if rule is None or rule.organization_id != organization_id or not rule.is_active:
            return None
        return rule

    async def save_rule(self, rule: SmartRule) -> SmartRule:
        with self._lock:
            existing = self._rules.get(rule.id)
            if existing is not None:
                rule = rule.model_copy(
                    update={
                        "execution_count": existing.execution_count,
                        "last_executed_at": existing.last_executed_at,
                        "created_at": existing.created_at,
                    }
                )
            self._rules[rule.id] = rule
        logger.info("Saved smart rule %s for organization %s", rule.id, rule.organization_id)
        return rule

    async def delete_rule(self, organization_id: str, rule_id: str) -> bool:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None or rule.organization_id != organization_id:
                return False
            del self._rules[rule_id]
        return True

    async def record_execution(self, rule_id: str) -> None:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                return
            self._rules[rule_id] = rule.model_copy(
                update={
                    "execution_count": rule.execution_count + 1,
                    "last_executed_at": datetime.now(UTC),
                }
            )

    def peek_rule(self, rule_id: str) -> SmartRule | None:
        """Return a stored rule regardless of tenant or status."""

        with self._lock:
            return self._rules.get(rule_id)

    # BranchRepository

    async def list_branches(
        self, organization_id: str, branch_ids: Sequence[str] | None = None
    ) -> list[Branch]:
        with self._lock:
            return [
                branch
                for branch in self._branches.values()
                if branch.organization_id == organization_id
                and branch.is_active
                and not branch.is_deleted
                and (not branch_ids or branch.id in branch_ids)
            ]


_catalog = InMemoryCatalog()


def get_catalog() -> InMemoryCatalog:
    """FastAPI dependency factory."""

    return _catalog
