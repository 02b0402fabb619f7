"""
Queue action names exchanged with the orchestrator.

Inbound actions ask this service to change a command; outbound actions
report what changed. Both travel in the ``Action`` message attribute.
"""

from enum import Enum
from typing import Dict, Optional


class InboundAction(str, Enum):
    """Actions the orchestrator sends on the inbound work queue."""
    CREATE = "CREATE"
    VALIDATE = "VALIDATE"
    CANCEL = "CANCEL"
    DELETE = "DELETE"

    @property
    def reply(self) -> 'OutboundAction':
        """Event published once this action has been applied."""
        return _REPLIES[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional['InboundAction']:
        """
        Parse an ``Action`` attribute value.

        Returns:
            Matching action, or None if the value is absent or unknown
        """
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class OutboundAction(str, Enum):
    """Events this service publishes on the orchestrator queue."""
    CREATE = "CREATE"           # Command created through the HTTP API
    CREATED = "CREATED"         # Creation confirmed by the orchestrator
    VALIDATED = "VALIDATED"
    CANCELED = "CANCELED"
    DELETED = "DELETED"


_REPLIES: Dict[InboundAction, OutboundAction] = {
    InboundAction.CREATE: OutboundAction.CREATED,
    InboundAction.VALIDATE: OutboundAction.VALIDATED,
    InboundAction.CANCEL: OutboundAction.CANCELED,
    InboundAction.DELETE: OutboundAction.DELETED,
}
