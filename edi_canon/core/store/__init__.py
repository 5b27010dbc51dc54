"""
Canonical dataset persistence interfaces and the in-memory store.
"""

from .base import CanonicalStore, GroupKey, OutcomeSink, UnitOfWork
from .memory_store import InMemoryCanonicalStore

__all__ = [
    "CanonicalStore",
    "UnitOfWork",
    "OutcomeSink",
    "GroupKey",
    "InMemoryCanonicalStore",
]
