"""
Command lifecycle engine.

Every change to a command goes through this engine, whichever entry point
triggered it. A transition is an ordered pipeline of three awaited steps:

1. mutate the record store,
2. publish the resulting event to the orchestrator queue,
3. acknowledge (delete) the inbound message, for queue-triggered transitions.

A step only runs once the previous one has completed; the first failing
step aborts the pipeline. Nothing is rolled back, so a publish failure after
a successful store mutation leaves the store ahead of the event stream.
That case is raised as :class:`PartialTransitionError` and counted apart.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..domain.actions import InboundAction, OutboundAction
from ..domain.commands import Command, CommandStatus
from ..domain.messages import InboundMessage, OutboundMessage
from ..exceptions import (
    AcknowledgeError,
    CommandServiceError,
    MalformedMessageError,
    PartialTransitionError,
    StoreError,
)
from ..interfaces.lifecycle import IComponent
from ..interfaces.queues import IMessageQueue
from ..interfaces.storage import ICommandStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a completed transition."""

    trigger: str
    """Name of the transition that ran (``create``, ``validate``, ...)."""

    command_id: str
    """Command the transition applied to."""

    event: OutboundMessage
    """Event published to the orchestrator queue."""

    acknowledged: bool = False
    """Whether an inbound message was deleted as the last step."""


@dataclass(frozen=True)
class _Plan:
    """Store mutation and event prepared for one queue-triggered transition."""
    trigger: str
    command_id: str
    mutate: Callable[[], Awaitable[Any]]
    event: OutboundMessage


class CommandLifecycleEngine(IComponent):
    """
    State machine and transition protocol for command records.

    The engine owns all writes to the record store. HTTP handlers call
    :meth:`create`, :meth:`delete` and :meth:`list_commands`; the inbound
    poller calls :meth:`handle_message`.
    """

    def __init__(self,
                 store: ICommandStore,
                 orchestrator_queue: IMessageQueue,
                 inbound_queue: IMessageQueue) -> None:
        self._store = store
        self._orchestrator_queue = orchestrator_queue
        self._inbound_queue = inbound_queue
        self._running = False

        self._queue_transitions: Dict[InboundAction, Callable[[Dict[str, Any], OutboundAction], _Plan]] = {
            InboundAction.CREATE: self._plan_confirm_create,
            InboundAction.VALIDATE: self._plan_validate,
            InboundAction.CANCEL: self._plan_cancel,
            InboundAction.DELETE: self._plan_confirm_delete,
        }
        missing = [action.value for action in InboundAction
                   if action not in self._queue_transitions]
        if missing:
            raise RuntimeError(f"No transition defined for inbound actions: {missing}")

        # Metrics
        self._metrics: Dict[str, Any] = {
            'transitions_started': 0,
            'transitions_completed': 0,
            'transitions_failed': 0,
            'partial_failures': 0,
            'ack_failures': 0,
            'by_trigger': {},
            'last_transition_at': None,
        }

    @property
    def name(self) -> str:
        """Get component name."""
        return "CommandLifecycleEngine"

    async def start(self) -> None:
        """Start the lifecycle engine."""
        if self._running:
            return

        self._running = True
        logger.info("Command lifecycle engine started")

    async def stop(self) -> None:
        """Stop the lifecycle engine."""
        if not self._running:
            return

        self._running = False
        logger.info("Command lifecycle engine stopped")

    async def check_health(self) -> Dict[str, Any]:
        """Check lifecycle engine health."""
        return {
            'healthy': self._running,
            'status': 'running' if self._running else 'stopped',
            'details': self.get_metrics(),
        }

    def get_metrics(self) -> Dict[str, Any]:
        """Get a copy of the transition metrics."""
        metrics = self._metrics.copy()
        metrics['by_trigger'] = dict(self._metrics['by_trigger'])
        return metrics

    # HTTP-triggered transitions

    async def create(self, command: Command) -> TransitionResult:
        """
        Insert a new command and announce it with a ``CREATE`` event.

        Args:
            command: Freshly built command in ``IN_PROCESS`` status

        Returns:
            Transition result

        Raises:
            StoreError: If the insert failed, nothing was published
            PartialTransitionError: If the insert succeeded but publishing failed
        """
        return await self._execute(
            trigger="create",
            command_id=command.id,
            mutate=lambda: self._store.put(command),
            event=OutboundMessage.for_command(OutboundAction.CREATE, command.to_dict()),
        )

    async def delete(self, command_id: str) -> TransitionResult:
        """
        Delete a command and announce it with a ``DELETED`` event.

        Deleting an unknown id is not an error: the store treats it as a
        no-op and the event is still published.
        """
        return await self._execute(
            trigger="delete",
            command_id=command_id,
            mutate=lambda: self._store.delete(command_id),
            event=OutboundMessage.for_command(OutboundAction.DELETED, {'id': command_id}),
        )

    async def list_commands(self) -> List[Command]:
        """Return every stored command."""
        try:
            return await self._store.scan()
        except CommandServiceError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to scan commands: {e}") from e

    # Queue-triggered transitions

    async def handle_message(self, action: InboundAction, message: InboundMessage) -> TransitionResult:
        """
        Apply an inbound queue message and acknowledge it.

        The message is deleted from the inbound queue only after the store
        mutation and the event publish have both completed. On any failure
        it is left in the queue and will be delivered again once its
        visibility timeout expires.

        Args:
            action: Parsed ``Action`` attribute of the message
            message: Received message

        Returns:
            Transition result with ``acknowledged`` set

        Raises:
            MalformedMessageError: If the body does not describe a command
            StoreError: If the store mutation failed
            PartialTransitionError: If the event could not be published
            AcknowledgeError: If the message could not be deleted
        """
        try:
            payload = message.json_body()
            plan = self._queue_transitions[action](payload, action.reply)
        except (ValueError, KeyError, TypeError) as e:
            raise MalformedMessageError(
                f"Cannot apply {action.value} message {message.message_id}: {e}",
                message_id=message.message_id) from e

        logger.debug(f"Applying {action.value} to command {plan.command_id} "
                     f"(message {message.message_id}, delivery {message.receive_count})")

        return await self._execute(
            trigger=plan.trigger,
            command_id=plan.command_id,
            mutate=plan.mutate,
            event=plan.event,
            receipt_handle=message.receipt_handle,
        )

    def _plan_confirm_create(self, payload: Dict[str, Any], reply: OutboundAction) -> _Plan:
        command = Command.from_dict(payload)
        if command.status.is_terminal:
            raise ValueError(f"cannot store a command in {command.status.value} status")
        return _Plan(
            trigger="confirm_create",
            command_id=command.id,
            mutate=lambda: self._store.put(command),
            event=OutboundMessage.for_command(reply, command.to_dict()),
        )

    def _plan_validate(self, payload: Dict[str, Any], reply: OutboundAction) -> _Plan:
        return self._plan_status_update("validate", payload, CommandStatus.VALIDATED, reply)

    def _plan_cancel(self, payload: Dict[str, Any], reply: OutboundAction) -> _Plan:
        return self._plan_status_update("cancel", payload, CommandStatus.CANCELED, reply)

    def _plan_status_update(self, trigger: str, payload: Dict[str, Any],
                            status: CommandStatus, event_action: OutboundAction) -> _Plan:
        command_id = _require_id(payload)
        return _Plan(
            trigger=trigger,
            command_id=command_id,
            mutate=lambda: self._store.update_status(command_id, status),
            event=OutboundMessage.for_command(event_action, {**payload, 'status': status.value}),
        )

    def _plan_confirm_delete(self, payload: Dict[str, Any], reply: OutboundAction) -> _Plan:
        command_id = _require_id(payload)
        return _Plan(
            trigger="confirm_delete",
            command_id=command_id,
            mutate=lambda: self._store.delete(command_id),
            event=OutboundMessage.for_command(reply, payload),
        )

    # Transition protocol

    async def _execute(self,
                       trigger: str,
                       command_id: str,
                       mutate: Callable[[], Awaitable[Any]],
                       event: OutboundMessage,
                       receipt_handle: Optional[str] = None) -> TransitionResult:
        """Run store mutation, publish and optional acknowledgment in order."""
        self._metrics['transitions_started'] += 1
        by_trigger = self._metrics['by_trigger']
        by_trigger[trigger] = by_trigger.get(trigger, 0) + 1

        try:
            await mutate()
        except CommandServiceError as e:
            self._metrics['transitions_failed'] += 1
            logger.error(f"Transition {trigger} failed for command {command_id}: "
                         f"store mutation failed: {e}")
            raise
        except Exception as e:
            self._metrics['transitions_failed'] += 1
            logger.error(f"Transition {trigger} failed for command {command_id}: "
                         f"store mutation failed: {e}")
            raise StoreError(f"Store mutation failed: {e}", command_id=command_id) from e

        try:
            await self._orchestrator_queue.send(event)
        except Exception as e:
            self._metrics['transitions_failed'] += 1
            self._metrics['partial_failures'] += 1
            logger.error(f"PARTIAL TRANSITION: {trigger} was applied to the store for command "
                         f"{command_id} but the {event.action.value} event was not published: {e}")
            raise PartialTransitionError(
                f"{trigger} stored but {event.action.value} event not published: {e}",
                command_id=command_id,
                action=event.action.value) from e

        logger.debug(f"Sent {event.action.value} to orchestrator queue for command {command_id}")

        acknowledged = False
        if receipt_handle is not None:
            try:
                await self._inbound_queue.delete(receipt_handle)
            except Exception as e:
                self._metrics['transitions_failed'] += 1
                self._metrics['ack_failures'] += 1
                logger.warning(f"Transition {trigger} for command {command_id} completed but the "
                               f"inbound message was not deleted, it will be redelivered: {e}")
                raise AcknowledgeError(
                    f"Failed to delete inbound message: {e}", command_id=command_id) from e
            acknowledged = True

        self._metrics['transitions_completed'] += 1
        self._metrics['last_transition_at'] = time.time()
        logger.info(f"Transition {trigger} completed for command {command_id}")

        return TransitionResult(
            trigger=trigger,
            command_id=command_id,
            event=event,
            acknowledged=acknowledged,
        )


def _require_id(payload: Dict[str, Any]) -> str:
    command_id = payload.get('id')
    if not command_id or not isinstance(command_id, str):
        raise ValueError("payload has no command id")
    return command_id
