"""
Core module containing business logic, domain models, and service interfaces.

This module defines the command lifecycle, independent of the HTTP framework
and of the storage and queue services behind the adapters.
"""

from .interfaces.lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .interfaces.storage import ICommandStore
from .interfaces.queues import IMessageQueue
from .domain.actions import InboundAction, OutboundAction
from .domain.commands import Command, CommandStatus
from .domain.messages import InboundMessage, OutboundMessage

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "ICommandStore",
    "IMessageQueue",
    "InboundAction",
    "OutboundAction",
    "Command",
    "CommandStatus",
    "InboundMessage",
    "OutboundMessage",
]
