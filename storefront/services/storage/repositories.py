"""Async persistence interfaces consumed by the engine and the resolvers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from storefront.models.location import Branch
from storefront.models.page import StorefrontPage
from storefront.models.product import ProductRecord
from storefront.models.rule import SmartRule
from storefront.models.taxonomy import TaxonomyEntry, TaxonomyType
from storefront.services.rules.query import RuleQuery


class ProductRepository(ABC):
    @abstractmethod
    async def find(self, query: RuleQuery) -> list[ProductRecord]:
        """Return matching records, ordered and capped by the query."""

    @abstractmethod
    async def count(self, query: RuleQuery) -> int:
        """Number of records matching the query predicate, ignoring the limit."""

    @abstractmethod
    async def find_by_ids(
        self, organization_id: str, product_ids: Sequence[str]
    ) -> list[ProductRecord]:
        """Active tenant records among ``product_ids``; unknown ids are skipped."""

    @abstractmethod
    async def count_by_category(self, organization_id: str) -> dict[str, int]:
        ...


class TaxonomyRepository(ABC):
    @abstractmethod
    async def find_categories(
        self,
        organization_id: str,
        *,
        category_ids: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[TaxonomyEntry]:
        """Active categories ordered by ``sort_order`` then newest first."""

    @abstractmethod
    async def find_by_name(
        self, organization_id: str, taxonomy_type: TaxonomyType, name: str
    ) -> TaxonomyEntry | None:
        ...


class PageStore(ABC):
    @abstractmethod
    async def list_published_pages(self, organization_id: str) -> list[StorefrontPage]:
        ...

    @abstractmethod
    async def get_published_page(
        self, organization_id: str, slug: str
    ) -> StorefrontPage | None:
        ...

    @abstractmethod
    async def get_homepage(self, organization_id: str) -> StorefrontPage | None:
        ...

    @abstractmethod
    async def increment_view_count(self, page_id: str) -> None:
        ...


class RuleStore(ABC):
    @abstractmethod
    async def get_rule(self, organization_id: str, rule_id: str) -> SmartRule | None:
        """Active rule owned by the tenant, or None."""

    @abstractmethod
    async def save_rule(self, rule: SmartRule) -> SmartRule:
        ...

    @abstractmethod
    async def delete_rule(self, organization_id: str, rule_id: str) -> bool:
        ...

    @abstractmethod
    async def record_execution(self, rule_id: str) -> None:
        """Bump the execution counter and last-executed timestamp."""


class BranchRepository(ABC):
    @abstractmethod
    async def list_branches(
        self, organization_id: str, branch_ids: Sequence[str] | None = None
    ) -> list[Branch]:
        ...
