"""
agentbuilders/api/app.py: FastAPI read API for the framework catalog.

Endpoint summary:
    GET    /api/v1/health                       Liveness probe.
    GET    /api/v1/frameworks                   Filtered, sorted, paginated listing.
    GET    /api/v1/frameworks/trending          Top trending frameworks.
    GET    /api/v1/frameworks/by-repo           Lookup by "owner/repo".
    GET    /api/v1/frameworks/{id}              Framework with category, snapshot, resources.
    GET    /api/v1/frameworks/{id}/snapshots    Metrics snapshot history.
    GET    /api/v1/categories                   All categories.
    GET    /api/v1/categories/{id}              One category.
    GET    /api/v1/resources                    Paginated resources with framework names.
    GET    /api/v1/resources/{id}               Resource with its framework.
    GET    /api/v1/resources/{id}/related       Related resource recommendations.
    GET    /api/v1/me/settings                  Caller's settings (null until first save).
    PUT    /api/v1/me/settings                  Create or update caller's settings.
    PUT    /api/v1/me/favorites/{framework_id}  Add a favorite.
    DELETE /api/v1/me/favorites/{framework_id}  Remove a favorite.

The /me routes need ``Authorization: Bearer <token>``; the token is resolved
to an identity-provider subject by the injected authenticator.
"""

from typing import Callable, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from agentbuilders import __version__
from agentbuilders.catalog import Catalog
from agentbuilders.catalog.frameworks import DEFAULT_PAGE_SIZE, DEFAULT_TRENDING_LIMIT
from agentbuilders.catalog.resources import DEFAULT_RELATED_LIMIT
from agentbuilders.errors import NotFoundError, ValidationError
from agentbuilders.models.schemas import (
    Category,
    Framework,
    FrameworkDetail,
    FrameworkPage,
    MetricsSnapshot,
    Resource,
    ResourceDetail,
    ResourcePage,
    UserSettings,
)
from agentbuilders.storage.base import DocumentStore


# Maps a bearer token to a subject id, or None when the token is invalid.
Authenticator = Callable[[str], Optional[str]]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class SettingsUpdate(BaseModel):
    """Request body for PUT /me/settings. Omitted fields keep their value."""
    theme: Optional[str] = None
    favorite_framework_ids: Optional[list[str]] = None


def create_app(store: DocumentStore, authenticator: Optional[Authenticator] = None) -> FastAPI:
    """
    Create and return the catalog FastAPI application.

    Args:
        store: Document store holding the catalog.
        authenticator: Resolves bearer tokens to subject ids. Without one,
                       every /me route answers 401.

    Returns:
        Configured FastAPI application instance.
    """
    catalog = Catalog(store)

    app = FastAPI(
        title="Agent Builders API",
        version=__version__,
        description="Catalog of AI agent-building frameworks with popularity and trending metrics.",
    )

    # ── Error mapping ──────────────────────────────────────────────────────────

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def invalid(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    # ── Auth ──────────────────────────────────────────────────────────────────

    def current_subject(authorization: Optional[str] = Header(None)) -> str:
        """Resolve the caller's subject id from the bearer token."""
        scheme, _, token = (authorization or "").partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise HTTPException(status_code=401, detail="Missing bearer token")
        subject = authenticator(token) if authenticator else None
        if not subject:
            raise HTTPException(status_code=401, detail="Invalid bearer token")
        return subject

    # ── Routes ────────────────────────────────────────────────────────────────

    @app.get("/api/v1/health", response_model=HealthResponse, tags=["system"])
    def health() -> dict:
        """Liveness probe; returns service status and version."""
        return {"status": "ok", "version": __version__}

    @app.get("/api/v1/frameworks", response_model=FrameworkPage, tags=["frameworks"])
    def list_frameworks(
        category: Optional[str] = None,
        tags: Optional[list[str]] = Query(None),
        search: Optional[str] = None,
        sort_by: str = "trending_score",
        sort_direction: str = "desc",
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> FrameworkPage:
        return catalog.frameworks.list_frameworks(
            category_id=category,
            tags=tags,
            search=search,
            sort_by=sort_by,
            sort_direction=sort_direction,
            limit=limit,
            offset=offset,
        )

    @app.get("/api/v1/frameworks/trending", response_model=list[Framework], tags=["frameworks"])
    def trending(limit: int = DEFAULT_TRENDING_LIMIT) -> list[Framework]:
        return catalog.frameworks.get_trending_frameworks(limit)

    @app.get("/api/v1/frameworks/by-repo", response_model=Framework, tags=["frameworks"])
    def by_repo(path: str) -> Framework:
        """Look up a framework by its "owner/repo" path."""
        return catalog.frameworks.get_framework_by_repo_path(path)

    @app.get("/api/v1/frameworks/{framework_id}", response_model=FrameworkDetail, tags=["frameworks"])
    def get_framework(framework_id: str) -> FrameworkDetail:
        return catalog.frameworks.get_framework(framework_id)

    @app.get(
        "/api/v1/frameworks/{framework_id}/snapshots",
        response_model=list[MetricsSnapshot],
        tags=["frameworks"],
    )
    def snapshots(framework_id: str, since: Optional[float] = None) -> list[MetricsSnapshot]:
        """Return metrics snapshots oldest first, optionally from ``since`` (unix seconds)."""
        return catalog.frameworks.snapshot_history(framework_id, since=since)

    @app.get("/api/v1/categories", response_model=list[Category], tags=["categories"])
    def list_categories() -> list[Category]:
        return catalog.categories.list_categories()

    @app.get("/api/v1/categories/{category_id}", response_model=Category, tags=["categories"])
    def get_category(category_id: str) -> Category:
        return catalog.categories.get_category(category_id)

    @app.get("/api/v1/resources", response_model=ResourcePage, tags=["resources"])
    def list_resources(
        framework: Optional[str] = None,
        type: Optional[str] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> ResourcePage:
        return catalog.resources.list_resources(framework_id=framework, type=type, limit=limit, offset=offset)

    @app.get("/api/v1/resources/{resource_id}", response_model=ResourceDetail, tags=["resources"])
    def get_resource(resource_id: str) -> ResourceDetail:
        return catalog.resources.get_resource(resource_id)

    @app.get("/api/v1/resources/{resource_id}/related", response_model=list[Resource], tags=["resources"])
    def related_resources(resource_id: str, limit: int = DEFAULT_RELATED_LIMIT) -> list[Resource]:
        return catalog.resources.get_related_resources(resource_id, limit=limit)

    @app.get("/api/v1/me/settings", response_model=Optional[UserSettings], tags=["users"])
    def get_settings(subject: str = Depends(current_subject)) -> Optional[UserSettings]:
        return catalog.users.get_user_settings(subject)

    @app.put("/api/v1/me/settings", response_model=UserSettings, tags=["users"])
    def save_settings(body: SettingsUpdate, subject: str = Depends(current_subject)) -> UserSettings:
        return catalog.users.save_user_settings(
            subject,
            theme=body.theme,
            favorite_framework_ids=body.favorite_framework_ids,
        )

    @app.put("/api/v1/me/favorites/{framework_id}", response_model=UserSettings, tags=["users"])
    def add_favorite(framework_id: str, subject: str = Depends(current_subject)) -> UserSettings:
        return catalog.users.add_favorite(subject, framework_id)

    @app.delete("/api/v1/me/favorites/{framework_id}", response_model=UserSettings, tags=["users"])
    def remove_favorite(framework_id: str, subject: str = Depends(current_subject)) -> UserSettings:
        return catalog.users.remove_favorite(subject, framework_id)

    return app
