"""
Command record store adapters.
"""

from .dynamodb import DynamoDBCommandStore
from .memory import InMemoryCommandStore

__all__ = [
    "DynamoDBCommandStore",
    "InMemoryCommandStore",
]
