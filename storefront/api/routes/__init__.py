"""API route registration."""

from fastapi import FastAPI

from storefront.api.routes import smart_rules, storefront_pages, system


def include_api_routes(app: FastAPI) -> None:
    """Attach all API routers to the application."""

    app.include_router(system.router)
    app.include_router(smart_rules.router)
    app.include_router(storefront_pages.router)
