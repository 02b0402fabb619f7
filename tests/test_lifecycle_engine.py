"""
Tests for the command lifecycle engine.

Covers the three-step transition protocol (store, publish, acknowledge),
its failure modes, and redelivery behaviour.
"""

import logging
from typing import Any, List
from unittest.mock import AsyncMock, Mock

import pytest

from commands_service.core.domain.actions import InboundAction
from commands_service.core.domain.commands import Command, CommandStatus
from commands_service.core.exceptions import (
    AcknowledgeError,
    CommandNotFoundError,
    InvalidTransitionError,
    MalformedMessageError,
    PartialTransitionError,
    QueueError,
    StoreError,
)
from commands_service.core.interfaces.queues import IMessageQueue
from commands_service.core.interfaces.storage import ICommandStore
from commands_service.core.services.lifecycle_engine import CommandLifecycleEngine


class TestHttpTransitions:
    """Transitions triggered by the HTTP API."""

    @pytest.mark.asyncio
    async def test_create_stores_and_publishes(self, engine, store, events) -> None:
        command = Command.new(["item"])

        result = await engine.create(command)

        assert store.get(command.id).status is CommandStatus.IN_PROCESS
        assert events() == [{"action": "CREATE", "body": command.to_dict()}]
        assert result.trigger == "create"
        assert result.command_id == command.id
        assert result.acknowledged is False

    @pytest.mark.asyncio
    async def test_create_store_failure_publishes_nothing(self, orchestrator_queue, inbound_queue) -> None:
        store = Mock(spec=ICommandStore)
        store.put = AsyncMock(side_effect=StoreError("table unavailable"))
        engine = CommandLifecycleEngine(store, orchestrator_queue, inbound_queue)

        with pytest.raises(StoreError):
            await engine.create(Command.new(None))

        assert len(orchestrator_queue) == 0
        assert engine.get_metrics()['transitions_failed'] == 1

    @pytest.mark.asyncio
    async def test_unexpected_store_error_is_wrapped(self, orchestrator_queue, inbound_queue) -> None:
        store = Mock(spec=ICommandStore)
        store.put = AsyncMock(side_effect=ConnectionResetError("reset"))
        engine = CommandLifecycleEngine(store, orchestrator_queue, inbound_queue)

        with pytest.raises(StoreError):
            await engine.create(Command.new(None))

    @pytest.mark.asyncio
    async def test_create_publish_failure_is_partial(self, store, inbound_queue, caplog) -> None:
        orchestrator = Mock(spec=IMessageQueue)
        orchestrator.send = AsyncMock(side_effect=QueueError("queue unavailable"))
        engine = CommandLifecycleEngine(store, orchestrator, inbound_queue)
        command = Command.new(None)

        with caplog.at_level(logging.ERROR):
            with pytest.raises(PartialTransitionError) as exc_info:
                await engine.create(command)

        assert exc_info.value.command_id == command.id
        assert exc_info.value.action == "CREATE"
        assert command.id in store
        assert engine.get_metrics()['partial_failures'] == 1
        assert "PARTIAL TRANSITION" in caplog.text

    @pytest.mark.asyncio
    async def test_delete_publishes_deleted(self, engine, store, events) -> None:
        command = Command.new(None)
        await store.put(command)

        await engine.delete(command.id)

        assert command.id not in store
        assert events() == [{"action": "DELETED", "body": {"id": command.id}}]

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, engine, store, events) -> None:
        await engine.delete("missing")
        await engine.delete("missing")

        assert [event["action"] for event in events()] == ["DELETED", "DELETED"]
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_list_commands(self, engine) -> None:
        first, second = Command.new(1), Command.new(2)
        await engine.create(first)
        await engine.create(second)

        listed = await engine.list_commands()

        assert sorted(c.id for c in listed) == sorted([first.id, second.id])

    @pytest.mark.asyncio
    async def test_list_commands_wraps_unexpected_errors(self, orchestrator_queue, inbound_queue) -> None:
        store = Mock(spec=ICommandStore)
        store.scan = AsyncMock(side_effect=RuntimeError("boom"))
        engine = CommandLifecycleEngine(store, orchestrator_queue, inbound_queue)

        with pytest.raises(StoreError):
            await engine.list_commands()


class TestQueueTransitions:
    """Transitions triggered by inbound queue messages."""

    @pytest.mark.asyncio
    async def test_validate(self, engine, store, inbound_queue, deliver, events) -> None:
        command = Command.new(["a"])
        await store.put(command)
        message = await deliver("VALIDATE", command.to_dict())

        result = await engine.handle_message(InboundAction.VALIDATE, message)

        assert result.acknowledged is True
        assert store.get(command.id).status is CommandStatus.VALIDATED
        assert events() == [{
            "action": "VALIDATED",
            "body": {**command.to_dict(), "status": "VALIDATED"},
        }]
        assert len(inbound_queue) == 0

    @pytest.mark.asyncio
    async def test_cancel(self, engine, store, inbound_queue, deliver, events) -> None:
        command = Command.new(None)
        await store.put(command)
        message = await deliver("CANCEL", {"id": command.id})

        await engine.handle_message(InboundAction.CANCEL, message)

        assert store.get(command.id).status is CommandStatus.CANCELED
        assert events()[0]["action"] == "CANCELED"
        assert events()[0]["body"]["status"] == "CANCELED"
        assert len(inbound_queue) == 0

    @pytest.mark.asyncio
    async def test_confirm_create(self, engine, store, inbound_queue, deliver, events) -> None:
        command = Command(id="c1", items=[1, 2])
        message = await deliver("CREATE", command.to_dict())

        await engine.handle_message(InboundAction.CREATE, message)

        assert store.get("c1") == command
        assert events() == [{"action": "CREATED", "body": command.to_dict()}]
        assert len(inbound_queue) == 0

    @pytest.mark.asyncio
    async def test_confirm_delete(self, engine, store, inbound_queue, deliver, events) -> None:
        await store.put(Command(id="c1"))
        message = await deliver("DELETE", {"id": "c1", "reason": "expired"})

        await engine.handle_message(InboundAction.DELETE, message)

        assert "c1" not in store
        assert events() == [{"action": "DELETED", "body": {"id": "c1", "reason": "expired"}}]
        assert len(inbound_queue) == 0

    @pytest.mark.asyncio
    async def test_steps_run_in_order(self, deliver) -> None:
        calls: List[str] = []

        def record(step: str) -> Any:
            return lambda *args, **kwargs: calls.append(step)

        store = Mock(spec=ICommandStore)
        store.update_status = AsyncMock(side_effect=record("store"))
        orchestrator = Mock(spec=IMessageQueue)
        orchestrator.send = AsyncMock(side_effect=record("publish"))
        inbound = Mock(spec=IMessageQueue)
        inbound.delete = AsyncMock(side_effect=record("acknowledge"))
        engine = CommandLifecycleEngine(store, orchestrator, inbound)

        message = await deliver("VALIDATE", {"id": "c1"})
        await engine.handle_message(InboundAction.VALIDATE, message)

        assert calls == ["store", "publish", "acknowledge"]
        inbound.delete.assert_awaited_once_with(message.receipt_handle)

    @pytest.mark.asyncio
    async def test_publish_failure_leaves_message_unacknowledged(
            self, store, inbound_queue, deliver) -> None:
        orchestrator = Mock(spec=IMessageQueue)
        orchestrator.send = AsyncMock(side_effect=QueueError("throttled"))
        engine = CommandLifecycleEngine(store, orchestrator, inbound_queue)
        await store.put(Command(id="c1"))
        message = await deliver("VALIDATE", {"id": "c1"})

        with pytest.raises(PartialTransitionError):
            await engine.handle_message(InboundAction.VALIDATE, message)

        assert store.get("c1").status is CommandStatus.VALIDATED
        assert len(inbound_queue) == 1

    @pytest.mark.asyncio
    async def test_unknown_record_is_not_resurrected(
            self, engine, store, inbound_queue, orchestrator_queue, deliver) -> None:
        message = await deliver("VALIDATE", {"id": "gone"})

        with pytest.raises(CommandNotFoundError):
            await engine.handle_message(InboundAction.VALIDATE, message)

        assert "gone" not in store
        assert len(orchestrator_queue) == 0
        assert len(inbound_queue) == 1

    @pytest.mark.asyncio
    async def test_forbidden_transition(self, engine, store, orchestrator_queue, deliver) -> None:
        await store.put(Command(id="c1", status=CommandStatus.VALIDATED))
        message = await deliver("CANCEL", {"id": "c1"})

        with pytest.raises(InvalidTransitionError) as exc_info:
            await engine.handle_message(InboundAction.CANCEL, message)

        assert exc_info.value.current_status == "VALIDATED"
        assert store.get("c1").status is CommandStatus.VALIDATED
        assert len(orchestrator_queue) == 0

    @pytest.mark.asyncio
    async def test_acknowledge_failure(self, store, orchestrator_queue, deliver) -> None:
        inbound = Mock(spec=IMessageQueue)
        inbound.delete = AsyncMock(side_effect=QueueError("receipt handle expired"))
        engine = CommandLifecycleEngine(store, orchestrator_queue, inbound)
        await store.put(Command(id="c1"))
        message = await deliver("VALIDATE", {"id": "c1"})

        with pytest.raises(AcknowledgeError):
            await engine.handle_message(InboundAction.VALIDATE, message)

        assert len(orchestrator_queue) == 1
        assert engine.get_metrics()['ack_failures'] == 1

    @pytest.mark.asyncio
    async def test_redelivery_applies_again(
            self, engine, store, inbound_queue, orchestrator_queue, clock, deliver, events) -> None:
        """A message acknowledged too late is applied twice with the same end state."""
        await store.put(Command(id="c1"))
        message = await deliver("VALIDATE", {"id": "c1"})

        # Visibility timeout expires before the first attempt is acknowledged
        clock.advance(61)
        [redelivered] = await inbound_queue.receive()

        await engine.handle_message(InboundAction.VALIDATE, redelivered)
        with pytest.raises(AcknowledgeError):
            await engine.handle_message(InboundAction.VALIDATE, message)

        assert redelivered.receive_count == 2
        assert store.get("c1").status is CommandStatus.VALIDATED
        assert [e["action"] for e in events()] == ["VALIDATED", "VALIDATED"]
        assert len(inbound_queue) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action,body", [
        ("VALIDATE", "not json"),
        ("VALIDATE", '["c1"]'),
        ("CANCEL", '{"status": "CANCELED"}'),
        ("DELETE", '{"reason": "no id"}'),
        ("CREATE", '{"id": "c1", "status": "ARCHIVED"}'),
        ("CREATE", '{"id": "c9", "status": "DELETED", "items": []}'),
    ])
    async def test_malformed_message(self, engine, store, inbound_queue, orchestrator_queue,
                                     deliver, action, body) -> None:
        message = await deliver(action, body)

        with pytest.raises(MalformedMessageError) as exc_info:
            await engine.handle_message(InboundAction(action), message)

        assert exc_info.value.message_id == message.message_id
        assert len(orchestrator_queue) == 0
        assert len(inbound_queue) == 1
        assert len(store) == 0


class TestEngineLifecycle:
    """Component lifecycle and metrics."""

    @pytest.mark.asyncio
    async def test_health_follows_lifecycle(self, engine) -> None:
        assert (await engine.check_health())['healthy'] is False

        await engine.start()
        health = await engine.check_health()
        assert health['healthy'] is True
        assert health['status'] == 'running'

        await engine.stop()
        assert (await engine.check_health())['status'] == 'stopped'

    @pytest.mark.asyncio
    async def test_metrics_by_trigger(self, engine, store, deliver) -> None:
        await engine.create(Command(id="c1"))
        await engine.handle_message(InboundAction.VALIDATE, await deliver("VALIDATE", {"id": "c1"}))
        await engine.delete("c1")

        metrics = engine.get_metrics()

        assert metrics['transitions_started'] == 3
        assert metrics['transitions_completed'] == 3
        assert metrics['by_trigger'] == {"create": 1, "validate": 1, "delete": 1}
        assert metrics['last_transition_at'] is not None
