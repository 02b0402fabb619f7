"""
Domain models for the commands service.

This module contains pure domain models without external dependencies:
the command record, its status state machine, and the queue messages
exchanged with the orchestrator.
"""

from .actions import InboundAction, OutboundAction
from .commands import Command, CommandStatus, group_id_for
from .messages import ACTION_ATTRIBUTE, InboundMessage, OutboundMessage

__all__ = [
    "InboundAction",
    "OutboundAction",
    "Command",
    "CommandStatus",
    "group_id_for",
    "ACTION_ATTRIBUTE",
    "InboundMessage",
    "OutboundMessage",
]
