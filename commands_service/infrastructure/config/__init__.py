"""
Configuration management infrastructure.

This module provides configuration models and loading from files, dotenv
files and environment variables.
"""

from .loader import ConfigLoader, ENV_MAPPINGS
from .models import (
    ApplicationConfig,
    AWSConfig,
    LoggingConfig,
    PollerConfig,
    QueueConfig,
    ServerConfig,
    StoreConfig,
)

__all__ = [
    "ConfigLoader",
    "ENV_MAPPINGS",
    "ApplicationConfig",
    "AWSConfig",
    "LoggingConfig",
    "PollerConfig",
    "QueueConfig",
    "ServerConfig",
    "StoreConfig",
]
