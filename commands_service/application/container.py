"""
Dependency injection container for managing service lifecycles and dependencies.

Services are registered against a key, usually the interface type they
implement, either as ready instances or as factories. Factories receive the
container, so they can resolve their own dependencies.
"""

import logging
from typing import Any, Callable, Dict, Hashable, List, Optional

logger = logging.getLogger(__name__)


class ServiceNotRegisteredException(Exception):
    """Raised when trying to resolve an unregistered service."""
    pass


class ServiceResolutionException(Exception):
    """Raised when service resolution fails."""
    pass


class CircularDependencyException(Exception):
    """Raised when circular dependencies are detected."""
    pass


def _key_name(key: Hashable) -> str:
    return getattr(key, '__name__', str(key))


class ServiceRegistration:
    """Registration information for a service."""

    def __init__(self,
                 key: Hashable,
                 factory: Optional[Callable[['Container'], Any]] = None,
                 instance: Any = None) -> None:
        self.key = key
        self.factory = factory
        self.instance = instance


class Container:
    """
    Lightweight dependency injection container.

    Every service is a singleton: a factory runs once, on first resolve.
    Circular dependencies between factories are detected.
    """

    def __init__(self) -> None:
        self._services: Dict[Hashable, ServiceRegistration] = {}
        self._resolution_stack: List[Hashable] = []

    def register(self,
                 key: Hashable,
                 factory: Callable[['Container'], Any]) -> None:
        """
        Register a factory for a service.

        Args:
            key: Interface type or name the service is resolved by
            factory: Callable receiving the container and returning the service
        """
        self._services[key] = ServiceRegistration(key, factory=factory)
        logger.debug(f"Registered factory for {_key_name(key)}")

    def register_instance(self, key: Hashable, instance: Any) -> None:
        """Register a specific instance as a singleton."""
        self._services[key] = ServiceRegistration(key, instance=instance)
        logger.debug(f"Registered instance for {_key_name(key)}")

    def resolve(self, key: Hashable) -> Any:
        """
        Resolve a service instance.

        Raises:
            ServiceNotRegisteredException: If service not registered
            ServiceResolutionException: If the factory failed
            CircularDependencyException: If factories depend on each other
        """
        if key in self._resolution_stack:
            cycle = " -> ".join([_key_name(k) for k in self._resolution_stack] +
                                [_key_name(key)])
            raise CircularDependencyException(f"Circular dependency detected: {cycle}")

        if key not in self._services:
            raise ServiceNotRegisteredException(f"Service {_key_name(key)} is not registered")

        registration = self._services[key]

        # Return existing singleton instance
        if registration.instance is not None:
            return registration.instance

        if registration.factory is None:
            raise ServiceResolutionException(
                f"Service {_key_name(key)} has neither an instance nor a factory")

        self._resolution_stack.append(key)
        try:
            instance = registration.factory(self)
        except (CircularDependencyException, ServiceNotRegisteredException):
            raise
        except Exception as e:
            raise ServiceResolutionException(
                f"Failed to resolve {_key_name(key)}: {str(e)}") from e
        finally:
            self._resolution_stack.pop()

        registration.instance = instance
        return instance

    def is_registered(self, key: Hashable) -> bool:
        """Check if a service key is registered."""
        return key in self._services

