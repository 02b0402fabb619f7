"""
Record store interface.

The store is the only durable state of the service. Implementations must
complete each call, including the backend's acknowledgment, before
returning, because the lifecycle engine publishes events only after the
store call returns.
"""

from abc import ABC, abstractmethod
from typing import List

from ..domain.commands import Command, CommandStatus


class ICommandStore(ABC):
    """Interface for command record storage keyed by command id."""

    @abstractmethod
    async def put(self, command: Command) -> None:
        """
        Insert a record, overwriting any record with the same id.

        Raises:
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    async def update_status(self, command_id: str, status: CommandStatus) -> None:
        """
        Set the status of an existing record.

        The update only applies when the record exists and its current
        status is one of ``CommandStatus.allowed_sources(status)``.

        Raises:
            CommandNotFoundError: If no record has this id
            InvalidTransitionError: If the current status forbids the update
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, command_id: str) -> None:
        """
        Delete a record. Deleting a missing id is a no-op.

        Raises:
            StoreError: If the delete fails
        """
        pass

    @abstractmethod
    async def scan(self) -> List[Command]:
        """
        Return all stored records, in no particular order.

        Raises:
            StoreError: If the scan fails
        """
        pass
