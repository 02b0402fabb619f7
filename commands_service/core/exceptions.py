"""
Exception hierarchy for the commands service.

Store and queue adapters raise these instead of their client library's
errors, so the lifecycle engine and the HTTP layer only deal with one
taxonomy.
"""

from typing import Optional


class CommandServiceError(Exception):
    """Base class for all commands service errors."""

    def __init__(self, message: str, command_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.command_id = command_id


class StoreError(CommandServiceError):
    """Raised when a record store call fails."""
    pass


class CommandNotFoundError(StoreError):
    """Raised when a conditional update targets a record that does not exist."""
    pass


class InvalidTransitionError(StoreError):
    """Raised when a record's current status does not allow the update."""

    def __init__(self, message: str, command_id: Optional[str] = None,
                 current_status: Optional[str] = None) -> None:
        super().__init__(message, command_id)
        self.current_status = current_status


class QueueError(CommandServiceError):
    """Raised when a queue receive, send or delete call fails."""
    pass


class PublishError(QueueError):
    """Raised when an event could not be published to the orchestrator."""
    pass


class AcknowledgeError(QueueError):
    """Raised when a processed inbound message could not be deleted."""
    pass


class PartialTransitionError(CommandServiceError):
    """
    Raised when a store mutation succeeded but its event was never published.

    The store is left mutated with no matching event; nothing compensates
    for it, so it must be visible in logs and metrics.
    """

    def __init__(self, message: str, command_id: Optional[str] = None,
                 action: Optional[str] = None) -> None:
        super().__init__(message, command_id)
        self.action = action


class MalformedMessageError(CommandServiceError):
    """Raised when an inbound message body cannot be turned into a command."""

    def __init__(self, message: str, message_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message_id = message_id


class PollerTerminatedError(CommandServiceError):
    """Raised when the inbound poller gives up after receive failures."""
    pass
