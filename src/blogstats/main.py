"""FastAPI application factory and entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogstats import __version__
from blogstats.config import get_settings
from blogstats.db.engine import Database
from blogstats.errors import (
    TrackingError,
    http_exception_handler,
    request_validation_handler,
    tracking_error_handler,
)
from blogstats.routers import admin, health, sessions, stats, track

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    # Startup
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.environment == "development" else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting blogstats API v%s in %s mode", __version__, settings.environment)

    # Reject insecure default secrets in production
    settings.validate_production()

    database = Database(settings.database_url, echo=(settings.environment == "development"))
    app.state.database = database

    # Create tables (for SQLite dev mode; production uses Alembic migrations)
    if settings.environment == "development":
        await database.create_all()
        logger.info("Database tables created/verified")

    yield

    # Shutdown
    await database.dispose()
    logger.info("blogstats API shut down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Disable interactive docs in production to reduce attack surface
    docs_url = "/docs" if settings.environment == "development" else None
    redoc_url = "/redoc" if settings.environment == "development" else None
    openapi_url = "/openapi.json" if settings.environment == "development" else None

    app = FastAPI(
        title="blogstats API",
        description="Visitor session and page view analytics",
        version=__version__,
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
    )

    # Tracking cookies are set on responses, so credentials must be allowed;
    # browsers reject a wildcard origin with credentials, hence the echo below.
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    if origins == ["*"]:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Middleware: rewrite text/plain to application/json for /v1/track/*
    # navigator.sendBeacon posts text/plain bodies when the tab is closing
    @app.middleware("http")
    async def rewrite_beacon_content_type(request: Request, call_next):
        if request.url.path.startswith("/v1/track/") and request.method == "POST":
            content_type = request.headers.get("content-type", "")
            if "text/plain" in content_type:
                new_headers = []
                for k, v in request.scope["headers"]:
                    if k == b"content-type":
                        new_headers.append((k, b"application/json"))
                    else:
                        new_headers.append((k, v))
                request.scope["headers"] = new_headers
        return await call_next(request)

    # Security headers middleware
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"
        return response

    # Error payloads
    app.add_exception_handler(TrackingError, tracking_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(track.router)
    app.include_router(sessions.router)
    app.include_router(stats.router)
    app.include_router(admin.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "blogstats.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=(settings.environment == "development"),
    )
