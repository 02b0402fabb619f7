"""
Commands Service - command record lifecycle between HTTP clients and an orchestrator.

Commands are created and deleted over HTTP, validated or canceled by the
orchestrator through an inbound queue, and every change is stored and then
announced on the orchestrator queue.
"""

__version__ = "0.1.0"

# Public API exports
from .core.domain.actions import InboundAction, OutboundAction
from .core.domain.commands import Command, CommandStatus
from .core.interfaces.lifecycle import IComponent, IHealthCheckable, IStartable, IStoppable
from .application.container import Container

__all__ = [
    "Command",
    "CommandStatus",
    "InboundAction",
    "OutboundAction",
    "IComponent",
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "Container",
]
