"""FastAPI application entry point.

Offerwatch API - wishlist offer matching and schema-driven feed imports.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from offerwatch.errors import CacheUnavailable, OfferwatchError, StoreError
from offerwatch.routes import api_router
from offerwatch.schemas.common import ErrorResponse
from offerwatch.services.feed_client import get_feed_client
from offerwatch.settings import get_settings
from offerwatch.stores.postgres import init_db, close_db, ping_db
from offerwatch.stores.redis import init_redis, close_redis

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Initialize database (skip in tests if no DB available)
    try:
        await init_db()
        await ping_db()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    # Redis is optional: wishlist reads fall back to Postgres without it
    try:
        await init_redis()
    except Exception:
        logger.exception("Redis init failed")

    yield

    # Shutdown
    await get_feed_client().close()
    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Wishlist offer matching and feed import API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Domain errors that escaped a route
    @app.exception_handler(OfferwatchError)
    async def offerwatch_exception_handler(request: Request, exc: OfferwatchError) -> JSONResponse:
        status_code = 503 if isinstance(exc, (StoreError, CacheUnavailable)) else 502
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse.build(type(exc).__name__, str(exc)).model_dump(),
        )

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = str(exc) if settings.debug else "Internal server error"
        return JSONResponse(
            status_code=500,
            content=ErrorResponse.build("INTERNAL_ERROR", message).model_dump(),
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "offerwatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
