"""Public storefront routes: page rendering and section hydration."""

from __future__ import annotations

from fastapi import APIRouter

from storefront.api.dependencies import (
    OrchestratorDependency,
    PageServiceDependency,
    http_error,
)
from storefront.errors import NotFoundError
from storefront.models.page import RenderedPage
from storefront.models.section import HydratedSection, HydrateRequest

router = APIRouter(prefix="/v1/storefront", tags=["storefront"])


@router.post(
    "/hydrate",
    response_model=list[HydratedSection],
    summary="Resolve live data for a list of sections",
)
async def hydrate_sections(
    payload: HydrateRequest, orchestrator: OrchestratorDependency
) -> list[HydratedSection]:
    return await orchestrator.hydrate_sections(payload.sections, payload.organization_id)


@router.get(
    "/{organization_id}/pages/{page_slug}",
    response_model=RenderedPage,
    summary="Render a published page with every active section hydrated",
)
async def get_page(
    organization_id: str, page_slug: str, pages: PageServiceDependency
) -> RenderedPage:
    try:
        return await pages.render_page(organization_id, page_slug)
    except NotFoundError as exc:
        raise http_error(exc) from exc
