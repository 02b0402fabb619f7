"""
Core interfaces defining the contracts for all major system components.

These interfaces provide the foundation for dependency inversion: the
lifecycle engine only sees a record store and two queue endpoints.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .storage import ICommandStore
from .queues import IMessageQueue

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "ICommandStore",
    "IMessageQueue",
]
