"""
FastAPI dependency injection utilities.

This module provides dependency functions for FastAPI routes to access
application services and components.
"""

from typing import Any, Callable, Hashable

from fastapi import Depends, HTTPException, Request, status

from ...application.container import Container
from ...application.startup import ApplicationStartup
from ...core.services.lifecycle_engine import CommandLifecycleEngine
from ...infrastructure.config.models import ApplicationConfig


def get_container(request: Request) -> Container:
    """
    Get the dependency injection container from the request.

    Raises:
        HTTPException: If container is not available
    """
    if not hasattr(request.app.state, "container"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application container not available"
        )

    return request.app.state.container  # type: ignore[no-any-return]


def get_config(request: Request) -> ApplicationConfig:
    """
    Get the application configuration from the request.

    Raises:
        HTTPException: If configuration is not available
    """
    if not hasattr(request.app.state, "config"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application configuration not available"
        )

    return request.app.state.config  # type: ignore[no-any-return]


def get_component(key: Hashable) -> Callable[..., Any]:
    """
    Create a dependency function resolving one service from the container.

    Args:
        key: Key the service is registered under

    Returns:
        Dependency function that resolves the service
    """
    def _get_component(container: Container = Depends(get_container)) -> Any:
        return container.resolve(key)

    return _get_component


get_engine = get_component(CommandLifecycleEngine)
get_startup = get_component(ApplicationStartup)
