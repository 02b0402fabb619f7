"""
Message queue interface.

The service talks to two queue endpoints, the inbound work queue and the
outbound orchestrator queue; both are instances of :class:`IMessageQueue`.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..domain.messages import InboundMessage, OutboundMessage


class IMessageQueue(ABC):
    """Interface for one queue endpoint."""

    @property
    @abstractmethod
    def url(self) -> str:
        """Address of the queue."""
        pass

    @abstractmethod
    async def receive(self,
                      max_messages: int = 10,
                      wait_time_seconds: int = 20,
                      visibility_timeout: int = 60,
                      attribute_names: Optional[Sequence[str]] = None) -> List[InboundMessage]:
        """
        Long-poll the queue for a batch of messages.

        Received messages stay hidden from other receivers for
        ``visibility_timeout`` seconds and come back unless deleted.
        An empty list is a normal outcome.

        Args:
            max_messages: Upper bound on the batch size
            wait_time_seconds: Long-poll wait
            visibility_timeout: Seconds before an unacknowledged message reappears
            attribute_names: Message attributes to return

        Raises:
            QueueError: If the receive call fails
        """
        pass

    @abstractmethod
    async def send(self, message: OutboundMessage) -> str:
        """
        Send a message with its attributes, deduplication and group keys.

        Returns:
            Queue-assigned message id

        Raises:
            QueueError: If the send fails
        """
        pass

    @abstractmethod
    async def delete(self, receipt_handle: str) -> None:
        """
        Acknowledge a received message.

        Raises:
            QueueError: If the delete fails
        """
        pass
