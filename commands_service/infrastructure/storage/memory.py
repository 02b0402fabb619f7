"""
In-memory command store for local development and tests.
"""

import asyncio
import logging
from typing import Any, Dict, List

from ...core.domain.commands import Command, CommandStatus
from ...core.exceptions import CommandNotFoundError, InvalidTransitionError
from ...core.interfaces.lifecycle import IComponent
from ...core.interfaces.storage import ICommandStore

logger = logging.getLogger(__name__)


class InMemoryCommandStore(IComponent, ICommandStore):
    """Dict-backed store with the same conditional-update rules as DynamoDB."""

    def __init__(self) -> None:
        self._records: Dict[str, Command] = {}
        self._lock = asyncio.Lock()
        self._running = False

    @property
    def name(self) -> str:
        return "InMemoryCommandStore"

    async def start(self) -> None:
        self._running = True
        logger.info("In-memory command store started, records are not durable")

    async def stop(self) -> None:
        self._running = False

    async def check_health(self) -> Dict[str, Any]:
        return {
            'healthy': True,
            'status': 'running' if self._running else 'stopped',
            'details': {'records': len(self._records)}
        }

    def get(self, command_id: str) -> Command:
        """Look up a record directly, bypassing the engine."""
        try:
            return self._records[command_id]
        except KeyError:
            raise CommandNotFoundError(f"Command {command_id} does not exist",
                                       command_id=command_id) from None

    def __contains__(self, command_id: object) -> bool:
        return command_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    async def put(self, command: Command) -> None:
        async with self._lock:
            self._records[command.id] = command

    async def update_status(self, command_id: str, status: CommandStatus) -> None:
        async with self._lock:
            current = self._records.get(command_id)
            if current is None:
                raise CommandNotFoundError(f"Command {command_id} does not exist",
                                           command_id=command_id)
            if current.status not in CommandStatus.allowed_sources(status):
                raise InvalidTransitionError(
                    f"Command {command_id} is {current.status.value}, "
                    f"cannot move to {status.value}",
                    command_id=command_id,
                    current_status=current.status.value)
            self._records[command_id] = current.with_status(status)

    async def delete(self, command_id: str) -> None:
        async with self._lock:
            self._records.pop(command_id, None)

    async def scan(self) -> List[Command]:
        async with self._lock:
            return list(self._records.values())
