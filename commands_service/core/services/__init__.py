"""
Core service implementations.

The lifecycle engine applies transitions to command records; the inbound
poller feeds it the orchestrator's messages.
"""

from .lifecycle_engine import CommandLifecycleEngine, TransitionResult
from .queue_poller import BatchReport, FailurePolicy, InboundQueuePoller, MessageOutcome

__all__ = [
    "CommandLifecycleEngine",
    "TransitionResult",
    "BatchReport",
    "FailurePolicy",
    "InboundQueuePoller",
    "MessageOutcome",
]
