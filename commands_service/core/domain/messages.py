"""
Queue message models.

These are transport-neutral views of what the queue adapters receive and
send: the adapters translate them to and from the queue service's wire
format.
"""

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .actions import InboundAction, OutboundAction
from .commands import group_id_for


ACTION_ATTRIBUTE = "Action"


@dataclass(frozen=True)
class InboundMessage:
    """
    Message received from a queue.

    The message stays owned by the queue until it is deleted with its
    receipt handle; until then it may be delivered again.
    """

    message_id: str
    """Queue-assigned message identifier."""

    receipt_handle: str
    """Handle used to acknowledge (delete) this delivery."""

    body: str
    """Raw message body."""

    attributes: Dict[str, str] = field(default_factory=dict)
    """String message attributes."""

    receive_count: int = 1
    """How many times the queue has delivered this message."""

    @property
    def action_name(self) -> Optional[str]:
        """Raw value of the ``Action`` attribute."""
        return self.attributes.get(ACTION_ATTRIBUTE)

    @property
    def action(self) -> Optional[InboundAction]:
        """Parsed inbound action, None if absent or unrecognized."""
        return InboundAction.parse(self.action_name)

    def json_body(self) -> Dict[str, Any]:
        """
        Decode the body as a JSON object.

        Raises:
            ValueError: If the body is not valid JSON or not an object
        """
        try:
            payload = json.loads(self.body)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"Message {self.message_id} body is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ValueError(f"Message {self.message_id} body is not a JSON object")
        return payload


@dataclass(frozen=True)
class OutboundMessage:
    """Event published to the orchestrator queue."""

    action: OutboundAction
    """Event name, sent as the ``Action`` attribute."""

    body: Dict[str, Any]
    """JSON-serializable payload, at least ``{"id": ...}``."""

    deduplication_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    """Fresh per publish, so republishing after redelivery is not deduplicated."""

    @property
    def command_id(self) -> str:
        return str(self.body['id'])

    @property
    def group_id(self) -> str:
        """Ordering key, one group per command."""
        return group_id_for(self.command_id)

    @property
    def attributes(self) -> Dict[str, str]:
        return {ACTION_ATTRIBUTE: self.action.value}

    def serialize_body(self) -> str:
        return json.dumps(self.body, default=str)

    @classmethod
    def for_command(cls, action: OutboundAction, body: Dict[str, Any]) -> 'OutboundMessage':
        """
        Build an event about a command.

        Args:
            action: Event name
            body: Command payload, must contain ``id``

        Raises:
            ValueError: If the payload has no id
        """
        if not body.get('id'):
            raise ValueError("Outbound message body must contain a command id")
        return cls(action=action, body=dict(body))
