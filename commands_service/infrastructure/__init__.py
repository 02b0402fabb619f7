"""
Infrastructure layer containing external dependencies and I/O operations.

This layer handles configuration, logging, and the adapters for the record
store and the message queues.
"""

from .config.loader import ConfigLoader
from .config.models import ApplicationConfig
from .logging.setup import setup_logging

__all__ = [
    "ConfigLoader",
    "ApplicationConfig",
    "setup_logging",
]
