"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from retailpivot.core.config import get_settings
from retailpivot.core.exceptions import register_exception_handlers
from retailpivot.core.health import router as health_router
from retailpivot.core.logging import configure_logging, get_logger
from retailpivot.core.middleware import RequestIdMiddleware
from retailpivot.features.dimensions.routes import router as dimensions_router
from retailpivot.features.filters.routes import router as filters_router
from retailpivot.features.pivot.routes import router as pivot_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown.

    Args:
        _app: FastAPI application instance (unused, required by lifespan protocol).

    Yields:
        None after startup, cleans up on shutdown.
    """
    settings = get_settings()

    # Startup
    configure_logging()
    logger.info(
        "app.startup_started",
        app_name=settings.app_name,
        app_env=settings.app_env,
        debug=settings.debug,
        pivot_max_records=settings.pivot_max_records,
        pivot_max_nodes=settings.pivot_max_nodes,
        pivot_strict_mode=settings.pivot_strict_mode,
    )

    yield

    # Shutdown
    logger.info("app.shutdown_completed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Retail back-office pivot and aggregation engine",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware (order matters - first added = outermost)
    # CORS middleware - allow the back-office frontend to access API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",  # Vite dev server (default)
            "http://127.0.0.1:5173",
        ]
        if settings.is_development
        else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    # Exception handlers
    register_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(dimensions_router)
    app.include_router(filters_router)
    app.include_router(pivot_router)

    return app


app = create_app()
