"""
API router modules for different endpoints.
"""

from . import commands, health

__all__ = [
    "commands",
    "health",
]
