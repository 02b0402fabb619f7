"""
In-memory queue endpoint for local development and tests.

Models the parts of SQS the service relies on: receipt handles, visibility
timeouts and redelivery of messages that are not deleted in time. Long
polling is not modelled, a receive returns immediately.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ...core.domain.messages import InboundMessage, OutboundMessage
from ...core.exceptions import QueueError
from ...core.interfaces.lifecycle import IComponent
from ...core.interfaces.queues import IMessageQueue


@dataclass
class _StoredMessage:
    message_id: str
    body: str
    attributes: Dict[str, str]
    group_id: Optional[str] = None
    deduplication_id: Optional[str] = None
    receive_count: int = 0
    visible_at: float = 0.0
    receipt_handle: Optional[str] = None
    sent_at: float = field(default_factory=time.time)


class InMemoryMessageQueue(IComponent, IMessageQueue):
    """Single in-process queue with visibility-timeout semantics."""

    def __init__(self, url: str = "memory://queue",
                 clock: Callable[[], float] = time.monotonic) -> None:
        self._url = url
        self._clock = clock
        self._messages: Dict[str, _StoredMessage] = {}
        self._lock = asyncio.Lock()
        self._running = False
        self._deleted = 0

    @property
    def name(self) -> str:
        return f"InMemoryMessageQueue({self._url})"

    @property
    def url(self) -> str:
        return self._url

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def check_health(self) -> Dict[str, Any]:
        return {
            'healthy': True,
            'status': 'running' if self._running else 'stopped',
            'details': {
                'queue_url': self._url,
                'messages': len(self._messages),
                'deleted': self._deleted,
            }
        }

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> List[InboundMessage]:
        """Snapshot of every message still in the queue, oldest first."""
        return [self._to_inbound(stored) for stored in
                sorted(self._messages.values(), key=lambda m: m.sent_at)]

    def put(self, body: str, attributes: Optional[Dict[str, str]] = None,
            group_id: Optional[str] = None) -> str:
        """Enqueue a raw message, as another producer would."""
        message_id = str(uuid.uuid4())
        self._messages[message_id] = _StoredMessage(
            message_id=message_id,
            body=body,
            attributes=dict(attributes or {}),
            group_id=group_id,
        )
        return message_id

    async def receive(self,
                      max_messages: int = 10,
                      wait_time_seconds: int = 20,
                      visibility_timeout: int = 60,
                      attribute_names: Optional[Sequence[str]] = None) -> List[InboundMessage]:
        async with self._lock:
            now = self._clock()
            batch = []
            for stored in sorted(self._messages.values(), key=lambda m: m.sent_at):
                if len(batch) >= max_messages:
                    break
                if stored.visible_at > now:
                    continue
                stored.receive_count += 1
                stored.visible_at = now + visibility_timeout
                stored.receipt_handle = str(uuid.uuid4())
                batch.append(self._to_inbound(stored, attribute_names))
            return batch

    async def send(self, message: OutboundMessage) -> str:
        async with self._lock:
            message_id = self.put(message.serialize_body(), message.attributes, message.group_id)
            self._messages[message_id].deduplication_id = message.deduplication_id
            return message_id

    async def delete(self, receipt_handle: str) -> None:
        async with self._lock:
            for message_id, stored in self._messages.items():
                if stored.receipt_handle == receipt_handle:
                    del self._messages[message_id]
                    self._deleted += 1
                    return
        raise QueueError(f"Receipt handle is not valid for {self._url}")

    def _to_inbound(self, stored: _StoredMessage,
                    attribute_names: Optional[Sequence[str]] = None) -> InboundMessage:
        attributes = stored.attributes
        if attribute_names is not None:
            attributes = {k: v for k, v in attributes.items() if k in attribute_names}
        return InboundMessage(
            message_id=stored.message_id,
            receipt_handle=stored.receipt_handle or "",
            body=stored.body,
            attributes=attributes,
            receive_count=stored.receive_count,
        )
