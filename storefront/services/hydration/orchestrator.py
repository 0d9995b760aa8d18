"""Concurrent hydration of page sections with per-section failure isolation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from storefront.errors import ResolutionError
from storefront.models.section import HydratedSection, Section
from storefront.services.hydration.resolvers import ResolutionTable, SectionResolver

logger = logging.getLogger(__name__)


class HydrationOrchestrator:
    """Resolve every active section of a page concurrently.

    Output order follows ``position`` (input order breaks ties), never
    completion order. A failing section is returned with empty data and its
    error flag set; it never affects its siblings.
    """

    def __init__(
        self, table: ResolutionTable, *, timeout_seconds: float | None = None
    ) -> None:
        self._table = table
        self._timeout = timeout_seconds

    def resolver_for(self, section: Section) -> SectionResolver:
        return self._table[(section.kind, section.data_source)]

    async def hydrate_sections(
        self, sections: Sequence[Section], organization_id: str
    ) -> list[HydratedSection]:
        active = [
            (index, section) for index, section in enumerate(sections) if section.is_active
        ]
        if not active:
            return []

        active.sort(key=lambda item: (item[1].position, item[0]))
        return list(
            await asyncio.gather(
                *(self._hydrate(section, organization_id) for _, section in active)
            )
        )

    async def _hydrate(self, section: Section, organization_id: str) -> HydratedSection:
        try:
            resolver = self.resolver_for(section)
            pending = resolver.resolve(section, organization_id)
            if self._timeout is not None:
                data = await asyncio.wait_for(pending, timeout=self._timeout)
            else:
                data = await pending
        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = ResolutionError(section.id, section.type, exc)
            logger.exception(
                "%s", error, extra={"organization_id": organization_id}
            )
            return HydratedSection.from_section(section, [], error=True)
        return HydratedSection.from_section(section, data)
