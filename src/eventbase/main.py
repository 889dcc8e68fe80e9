"""FastAPI application factory and main entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventbase import __version__
from eventbase.api.v1 import api_router
from eventbase.core.config import get_settings
from eventbase.core.errors import (
    AlreadyRunningError,
    GatewayError,
    InvalidInputError,
    MismatchError,
    NotFoundError,
    StorageError,
    TicketingError,
    VerificationSupersededError,
)
from eventbase.core.logging import configure_logging

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: list[tuple[type[TicketingError], int]] = [
    (InvalidInputError, 400),
    (NotFoundError, 404),
    (MismatchError, 409),
    (AlreadyRunningError, 409),
    (VerificationSupersededError, 409),
    (GatewayError, 502),
    (StorageError, 502),
]


def status_code_for(error: TicketingError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup/shutdown events."""
    settings = get_settings()
    configure_logging(settings)
    app.state.settings = settings
    logger.info(
        f"{settings.app_name} {__version__} starting on {settings.blockchain_network} "
        f"(chain {settings.chain_id})"
    )

    yield

    from eventbase.infrastructure.storage import get_content_store

    await get_content_store().close()


async def ticketing_error_handler(request: Request, exc: TicketingError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message},
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="EventBase ticketing core API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(TicketingError, ticketing_error_handler)

    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """Register all application routes."""
    settings = get_settings()

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness endpoint for load balancers."""
        return {
            "status": "healthy",
            "version": __version__,
            "network": settings.blockchain_network,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get(f"{settings.api_v1_prefix}/", tags=["API"])
    async def api_root():
        """API root endpoint with application info."""
        return {
            "name": settings.app_name,
            "version": __version__,
            "environment": settings.environment,
            "network": settings.blockchain_network,
            "explorer_url": settings.explorer_url,
        }


app = create_app()
