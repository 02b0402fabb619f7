"""
Shared fixtures: in-memory store and queues wired to a lifecycle engine.
"""

import json
from typing import Any, Awaitable, Callable, Dict, List, Union

import pytest

from commands_service.core.domain.messages import ACTION_ATTRIBUTE, InboundMessage
from commands_service.core.services.lifecycle_engine import CommandLifecycleEngine
from commands_service.infrastructure.queues.memory import InMemoryMessageQueue
from commands_service.infrastructure.storage.memory import InMemoryCommandStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryCommandStore:
    return InMemoryCommandStore()


@pytest.fixture
def inbound_queue(clock: FakeClock) -> InMemoryMessageQueue:
    return InMemoryMessageQueue("memory://inbound", clock=clock)


@pytest.fixture
def orchestrator_queue() -> InMemoryMessageQueue:
    return InMemoryMessageQueue("memory://orchestrator")


@pytest.fixture
def engine(store: InMemoryCommandStore,
           orchestrator_queue: InMemoryMessageQueue,
           inbound_queue: InMemoryMessageQueue) -> CommandLifecycleEngine:
    return CommandLifecycleEngine(store, orchestrator_queue, inbound_queue)


@pytest.fixture
def deliver(inbound_queue: InMemoryMessageQueue) -> Callable[..., Awaitable[InboundMessage]]:
    """Put a message on the inbound queue and receive that delivery."""

    async def _deliver(action: str, body: Union[str, Dict[str, Any]]) -> InboundMessage:
        raw = body if isinstance(body, str) else json.dumps(body)
        message_id = inbound_queue.put(raw, {ACTION_ATTRIBUTE: action})
        received = await inbound_queue.receive(max_messages=10)
        return next(m for m in received if m.message_id == message_id)

    return _deliver


def published(queue: InMemoryMessageQueue) -> List[Dict[str, Any]]:
    """Events on a queue as ``{"action": ..., "body": ...}`` dicts."""
    return [{"action": m.action_name, "body": m.json_body()} for m in queue.messages]


@pytest.fixture
def events(orchestrator_queue: InMemoryMessageQueue) -> Callable[[], List[Dict[str, Any]]]:
    return lambda: published(orchestrator_queue)
