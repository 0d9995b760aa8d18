"""Public page rendering: lookup, hydration and view tracking."""

from __future__ import annotations

import logging

from storefront.errors import NotFoundError
from storefront.models.page import RenderedPage, StorefrontPage
from storefront.services.background import DetachedTaskRunner
from storefront.services.hydration.orchestrator import HydrationOrchestrator
from storefront.services.storage.repositories import PageStore

logger = logging.getLogger(__name__)

HOME_SLUG = "home"


class StorefrontPageService:
    def __init__(
        self,
        pages: PageStore,
        orchestrator: HydrationOrchestrator,
        task_runner: DetachedTaskRunner,
    ) -> None:
        self._pages = pages
        self._orchestrator = orchestrator
        self._tasks = task_runner

    async def render_page(self, organization_id: str, page_slug: str) -> RenderedPage:
        """Hydrate a published page; ``home`` falls back to the tenant homepage.

        Raises:
            NotFoundError: no published page matches the slug.
        """

        page = await self._find(organization_id, page_slug)
        if page is None:
            raise NotFoundError(f"Page '{page_slug}' not found")

        sections = await self._orchestrator.hydrate_sections(page.sections, organization_id)

        # Best effort: the response never waits for or depends on the counter.
        self._tasks.spawn(
            self._pages.increment_view_count(page.id), name=f"page-view:{page.id}"
        )
        logger.info(
            "Rendered page %s",
            page.slug,
            extra={"organization_id": organization_id, "sections": len(sections)},
        )
        return RenderedPage(
            id=page.id,
            name=page.name,
            slug=page.slug,
            page_type=page.page_type,
            sections=sections,
            seo=page.seo,
            view_count=page.view_count,
        )

    async def _find(self, organization_id: str, page_slug: str) -> StorefrontPage | None:
        page = await self._pages.get_published_page(organization_id, page_slug)
        if page is None and page_slug == HOME_SLUG:
            page = await self._pages.get_homepage(organization_id)
        return page
