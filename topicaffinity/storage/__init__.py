"""
Repository boundaries and in-memory reference implementations.

Production deployments supply their own implementations of the abstract
stores; the in-memory ones back tests and single-process use.
"""

from .base import (
    ContentStore,
    ContentTopicsStore,
    InteractionLog,
    RelationshipStore,
    ScoreStore,
)
from .memory import (
    InMemoryContentStore,
    InMemoryContentTopicsStore,
    InMemoryInteractionLog,
    InMemoryRelationshipStore,
    InMemoryScoreStore,
)
from .locks import StripedLock, UserLockRegistry
from .snapshot import StoreSnapshot

__all__ = [
    "ContentStore",
    "ContentTopicsStore",
    "InteractionLog",
    "RelationshipStore",
    "ScoreStore",
    "InMemoryContentStore",
    "InMemoryContentTopicsStore",
    "InMemoryInteractionLog",
    "InMemoryRelationshipStore",
    "InMemoryScoreStore",
    "StripedLock",
    "UserLockRegistry",
    "StoreSnapshot",
]
