"""
FastAPI application factory and configuration.

This module creates and configures the FastAPI application with
error handling and route registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ...application.container import Container
from ...infrastructure.config.models import ApplicationConfig
from .middleware import ErrorHandlerMiddleware, internal_error_response
from .routers import commands, health

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Components are started and stopped by the application startup around
    the server, so there is nothing to do here beyond logging.
    """
    logger.info("Application starting up...")
    yield
    logger.info("Application shutting down...")


def create_app(container: Container, config: ApplicationConfig) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Dependency injection container with configured services
        config: Application configuration

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=config.name,
        version=config.version,
        description="Command record service bridging HTTP clients and the orchestrator queues",
        debug=config.debug,
        lifespan=lifespan
    )

    # Store container and config in app state
    app.state.container = container
    app.state.config = config

    _configure_error_handling(app)
    _register_routes(app)

    logger.info(f"FastAPI application created: {config.name} v{config.version}")
    return app


def _configure_error_handling(app: FastAPI) -> None:
    """Route every failure to the generic error response."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.error(f"Invalid request {request.method} {request.url}: {exc.errors()}")
        return internal_error_response()

    app.add_middleware(ErrorHandlerMiddleware)


def _register_routes(app: FastAPI) -> None:
    """Register API routes."""
    app.include_router(health.router, tags=["health"])
    app.include_router(commands.router, tags=["commands"])

    # Root endpoint
    @app.get("/", tags=["root"])
    async def root() -> Dict[str, Any]:
        """Root endpoint with basic application information."""
        return {
            "name": app.title,
            "version": app.version,
            "status": "running",
            "docs_url": "/docs",
            "health_url": "/health"
        }

    logger.debug("Routes registered")
