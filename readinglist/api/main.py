"""
Reading List API

FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import FastAPI, Request

from readinglist import __version__
from .schemas import HealthResponse
from .routes import auth, books, public
from .middleware import (
    LoggingConfig,
    RateLimitConfig,
    get_cors_config,
    setup_cors,
    setup_exception_handlers,
    setup_logging,
    setup_rate_limiting,
)
from .dependencies import ServiceContainer, Settings, get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup opens the database (creating tables) so the first request does
    not pay for it; shutdown drops expired sessions and releases the pool.
    """
    services: ServiceContainer = app.state.services
    logger.info(f"Starting Reading List API in {services.settings.environment} mode")

    try:
        _ = services.database
        logger.info("Reading List API started successfully")

        yield

    finally:
        logger.info("Shutting down Reading List API...")
        services.session_store.purge_expired()
        services.close()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    services: Optional[ServiceContainer] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.
        services: Prebuilt service container (tests). If None, one is built
            from ``settings``.

    Returns:
        Configured FastAPI application.
    """
    if services is not None:
        settings = services.settings
    elif settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Reading List Manager",
        description="Personal reading lists with anonymised community statistics.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.services = services or ServiceContainer(settings)

    api_prefix = settings.api_prefix
    health_path = f"{api_prefix}/health"

    # ==========================================================================
    # Middleware (last added = outermost)
    # ==========================================================================

    setup_exception_handlers(app, expose_details=settings.expose_error_details)

    if settings.rate_limit_enabled:
        app.state.rate_limiter = setup_rate_limiting(
            app,
            config=RateLimitConfig(
                requests_per_window=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
                enabled=True,
                excluded_paths=[health_path, "/docs", "/openapi.json", "/redoc"],
                endpoint_limits={
                    f"{api_prefix}/auth/login": settings.auth_rate_limit,
                    f"{api_prefix}/auth/register": settings.auth_rate_limit,
                },
            ),
        )

    setup_cors(
        app,
        config=get_cors_config(
            settings.environment,
            frontend_url=settings.frontend_url,
            extra_origins=settings.extra_origins,
        ),
    )

    setup_logging(
        app,
        config=LoggingConfig(
            enabled=True,
            log_request_body=settings.debug,
            session_cookie_name=settings.session_cookie_name,
            excluded_paths={health_path, "/favicon.ico"},
        ),
        structured=settings.is_production,
    )

    # ==========================================================================
    # Routers
    # ==========================================================================

    app.include_router(auth.router, prefix=api_prefix)
    # /books/public must be matched before /books/{book_id}
    app.include_router(public.router, prefix=api_prefix)
    app.include_router(books.router, prefix=api_prefix)

    # ==========================================================================
    # System Routes
    # ==========================================================================

    @app.get(health_path, response_model=HealthResponse, tags=["System"])
    def health_check(request: Request) -> HealthResponse:
        """Liveness plus a database round trip."""
        container: ServiceContainer = request.app.state.services
        database_ok = container.database.ping()

        return HealthResponse(
            status="healthy" if database_ok else "degraded",
            version=__version__,
            database="connected" if database_ok else "unavailable",
            environment=settings.environment,
        )

    return app


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "readinglist.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
