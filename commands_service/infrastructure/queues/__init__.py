"""
Message queue adapters.
"""

from .memory import InMemoryMessageQueue
from .sqs import SQSMessageQueue

__all__ = [
    "InMemoryMessageQueue",
    "SQSMessageQueue",
]
