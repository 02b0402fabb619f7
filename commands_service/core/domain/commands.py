"""
Command domain model and its status state machine.

A command is a tracked work order. Its identity, creation date and item
payload never change; only its status moves, and only along the transitions
declared by :class:`CommandStatus`.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet


class CommandStatus(str, Enum):
    """Lifecycle status of a command record."""
    IN_PROCESS = "IN_PROCESS"   # Initial status, set at creation
    VALIDATED = "VALIDATED"     # Confirmed by the orchestrator
    CANCELED = "CANCELED"       # Rejected by the orchestrator
    DELETED = "DELETED"         # Terminal, the record is removed

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition can leave this status."""
        return self is CommandStatus.DELETED

    @classmethod
    def allowed_sources(cls, target: 'CommandStatus') -> FrozenSet['CommandStatus']:
        """
        Get the statuses a record may hold when moving to ``target``.

        Self-transitions are allowed so that a redelivered message applies
        the same update again without failing.

        Args:
            target: Status the record should move to

        Returns:
            Set of acceptable current statuses
        """
        return _ALLOWED_SOURCES.get(target, frozenset())

    def can_transition_to(self, target: 'CommandStatus') -> bool:
        """Check if a record in this status may move to ``target``."""
        if target is CommandStatus.DELETED:
            return True
        return self in CommandStatus.allowed_sources(target)


_ALLOWED_SOURCES: Dict[CommandStatus, FrozenSet[CommandStatus]] = {
    CommandStatus.VALIDATED: frozenset({CommandStatus.IN_PROCESS, CommandStatus.VALIDATED}),
    CommandStatus.CANCELED: frozenset({CommandStatus.IN_PROCESS, CommandStatus.CANCELED}),
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Command:
    """
    Immutable command record.

    Status changes produce a new instance through :meth:`with_status`, the
    stored record is replaced as a whole or updated in place by the store.
    """

    id: str
    """Unique command identifier, never reused."""

    items: Any = None
    """Opaque payload supplied by the creator."""

    date: str = field(default_factory=_utc_now)
    """ISO-8601 creation timestamp."""

    status: CommandStatus = CommandStatus.IN_PROCESS
    """Current lifecycle status."""

    def __post_init__(self) -> None:
        """Validate command after creation."""
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Command id must be a non-empty string")

        if not isinstance(self.status, CommandStatus):
            # Accept raw strings coming from storage or queue payloads
            object.__setattr__(self, 'status', CommandStatus(self.status))

    @classmethod
    def new(cls, items: Any) -> 'Command':
        """
        Create a fresh command with a generated id.

        Args:
            items: Opaque payload

        Returns:
            Command in ``IN_PROCESS`` status
        """
        return cls(id=str(uuid.uuid4()), items=items)

    @property
    def group_id(self) -> str:
        """Ordering key shared by all events about this command."""
        return group_id_for(self.id)

    def with_status(self, status: CommandStatus) -> 'Command':
        """
        Create a copy of this command with a new status.

        Raises:
            ValueError: If the state machine forbids the transition
        """
        if not self.status.can_transition_to(status):
            raise ValueError(
                f"Cannot move command {self.id} from {self.status.value} to {status.value}")
        return Command(id=self.id, items=self.items, date=self.date, status=status)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert command to its wire/storage representation.

        Returns:
            Dictionary with ``id``, ``date``, ``items`` and ``status``
        """
        return {
            'id': self.id,
            'date': self.date,
            'items': self.items,
            'status': self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Command':
        """
        Create command from a stored record or queue payload.

        Missing ``date`` and ``status`` fall back to their creation defaults.

        Raises:
            ValueError: If ``id`` is missing or ``status`` is unknown
        """
        if 'id' not in data:
            raise ValueError("Command payload has no id")

        kwargs: Dict[str, Any] = {'id': data['id'], 'items': data.get('items')}
        if data.get('date'):
            kwargs['date'] = data['date']
        if data.get('status'):
            kwargs['status'] = CommandStatus(data['status'])
        return cls(**kwargs)


def group_id_for(command_id: str) -> str:
    """Build the queue ordering key for a command id."""
    return f"Commands-{command_id}"
