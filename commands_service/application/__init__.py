"""
Application layer containing dependency injection and startup logic.

This layer wires the core services to their infrastructure adapters and
manages the application lifecycle.
"""

from .container import Container
from .startup import INBOUND_QUEUE, ORCHESTRATOR_QUEUE, ApplicationStartup

__all__ = [
    "Container",
    "ApplicationStartup",
    "INBOUND_QUEUE",
    "ORCHESTRATOR_QUEUE",
]
