"""
AI Chat Backend - FastAPI Application

Main entry point for the backend API.
Provides endpoints for auth, chats, user profiles, and Stripe billing.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.responses import error_response
from app.api.routes import auth, chats, stripe, users
from app.config.settings import Settings, get_settings
from app.container import ServiceContainer, build_container
from app.infrastructure.exceptions import (
    ChatAppError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)


logger = logging.getLogger(__name__)

SERVICE_NAME = "AI Chat Boot API"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings

    # Startup
    logger.info(f"{SERVICE_NAME} starting in {settings.environment} mode...")

    if getattr(app.state, "container", None) is None:
        app.state.container = build_container(settings)
    container: ServiceContainer = app.state.container

    if settings.database_auto_create:
        await container.database.create_tables()
        logger.info("Database tables ensured")

    yield

    # Shutdown
    await container.database.close()
    logger.info(f"{SERVICE_NAME} shutting down...")


# ============================================================================
# Exception Handlers
# ============================================================================

def _status_for(exc: ChatAppError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, UnauthorizedError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, ForbiddenError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def app_error_handler(request: Request, exc: ChatAppError):
    """Map application errors to the response envelope."""
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.message, status_code=status_code, errors=exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Handle malformed request bodies, params and headers."""
    return error_response(
        "Validation failed",
        status_code=status.HTTP_400_BAD_REQUEST,
        errors=[
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ],
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Wrap framework HTTP errors (unknown route, wrong method) in the envelope."""
    response = error_response(str(exc.detail), status_code=exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_error_handler(request: Request, exc: Exception):
    """Handle anything else as a 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response("Internal server error")


# ============================================================================
# Application Factory
# ============================================================================

def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; defaults to the cached environment settings
        container: Pre-built services; built at startup when omitted
    """
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings)

    app = FastAPI(
        title="AI Chat",
        description="Chat backend with Firebase auth, Gemini replies and Stripe billing",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.container = container

    # CORS configuration from Settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ChatAppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ========================================================================
    # Health Check
    # ========================================================================

    @app.get(f"{settings.api_prefix}/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "success": True,
            "message": f"{SERVICE_NAME} is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": SERVICE_NAME,
            "version": "1.0.0",
            "docs": "/docs",
        }

    # ========================================================================
    # Routers
    # ========================================================================

    app.include_router(auth.router, prefix=settings.api_prefix, tags=["Auth"])
    app.include_router(chats.router, prefix=settings.api_prefix, tags=["Chats"])
    app.include_router(users.router, prefix=settings.api_prefix, tags=["Users"])
    app.include_router(stripe.router, prefix=settings.api_prefix, tags=["Stripe"])

    return app


app = create_app()
