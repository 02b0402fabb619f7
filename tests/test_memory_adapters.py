"""
Tests for the in-memory store and queue used for local development.
"""

import pytest

from commands_service.core.domain.actions import OutboundAction
from commands_service.core.domain.commands import Command, CommandStatus
from commands_service.core.domain.messages import OutboundMessage
from commands_service.core.exceptions import CommandNotFoundError, InvalidTransitionError, QueueError


class TestInMemoryCommandStore:
    """Test cases for the dict-backed store."""

    @pytest.mark.asyncio
    async def test_put_and_scan(self, store) -> None:
        await store.put(Command(id="c1"))
        await store.put(Command(id="c2"))

        assert sorted(c.id for c in await store.scan()) == ["c1", "c2"]
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_put_overwrites(self, store) -> None:
        await store.put(Command(id="c1", items=[1]))
        await store.put(Command(id="c1", items=[2]))

        assert store.get("c1").items == [2]

    @pytest.mark.asyncio
    async def test_update_status(self, store) -> None:
        await store.put(Command(id="c1"))

        await store.update_status("c1", CommandStatus.VALIDATED)

        assert store.get("c1").status is CommandStatus.VALIDATED

    @pytest.mark.asyncio
    async def test_update_missing_record(self, store) -> None:
        with pytest.raises(CommandNotFoundError):
            await store.update_status("c1", CommandStatus.CANCELED)
        assert "c1" not in store

    @pytest.mark.asyncio
    async def test_update_forbidden_transition(self, store) -> None:
        await store.put(Command(id="c1", status=CommandStatus.CANCELED))

        with pytest.raises(InvalidTransitionError):
            await store.update_status("c1", CommandStatus.VALIDATED)

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, store) -> None:
        await store.delete("c1")
        assert len(store) == 0

    def test_get_missing(self, store) -> None:
        with pytest.raises(CommandNotFoundError):
            store.get("c1")

    @pytest.mark.asyncio
    async def test_health(self, store) -> None:
        await store.start()
        await store.put(Command(id="c1"))

        health = await store.check_health()

        assert health['status'] == 'running'
        assert health['details']['records'] == 1


class TestInMemoryMessageQueue:
    """Test cases for the in-memory queue's visibility semantics."""

    @pytest.mark.asyncio
    async def test_received_message_is_hidden(self, inbound_queue) -> None:
        inbound_queue.put('{"id": "c1"}', {"Action": "VALIDATE"})

        first = await inbound_queue.receive()
        second = await inbound_queue.receive()

        assert len(first) == 1
        assert second == []
        assert len(inbound_queue) == 1

    @pytest.mark.asyncio
    async def test_redelivery_after_visibility_timeout(self, inbound_queue, clock) -> None:
        inbound_queue.put('{"id": "c1"}', {"Action": "VALIDATE"})
        [first] = await inbound_queue.receive(visibility_timeout=30)

        clock.advance(31)
        [second] = await inbound_queue.receive(visibility_timeout=30)

        assert second.message_id == first.message_id
        assert second.receipt_handle != first.receipt_handle
        assert second.receive_count == 2

        # Only the latest receipt handle is valid
        with pytest.raises(QueueError):
            await inbound_queue.delete(first.receipt_handle)
        await inbound_queue.delete(second.receipt_handle)
        assert len(inbound_queue) == 0

    @pytest.mark.asyncio
    async def test_receive_respects_batch_size(self, inbound_queue) -> None:
        for i in range(5):
            inbound_queue.put(f'{{"id": "c{i}"}}')

        batch = await inbound_queue.receive(max_messages=3)

        assert [m.json_body()["id"] for m in batch] == ["c0", "c1", "c2"]

    @pytest.mark.asyncio
    async def test_attribute_filter(self, inbound_queue) -> None:
        inbound_queue.put("{}", {"Action": "CANCEL", "Trace": "abc"})

        [message] = await inbound_queue.receive(attribute_names=["Action"])

        assert message.attributes == {"Action": "CANCEL"}

    @pytest.mark.asyncio
    async def test_send(self, orchestrator_queue) -> None:
        event = OutboundMessage.for_command(OutboundAction.CREATE, {"id": "c1", "items": [1]})

        message_id = await orchestrator_queue.send(event)

        [stored] = orchestrator_queue.messages
        assert stored.message_id == message_id
        assert stored.action_name == "CREATE"
        assert stored.json_body() == {"id": "c1", "items": [1]}

    @pytest.mark.asyncio
    async def test_health(self, orchestrator_queue) -> None:
        await orchestrator_queue.start()

        health = await orchestrator_queue.check_health()

        assert health['healthy'] is True
        assert health['details']['queue_url'] == "memory://orchestrator"
