from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ContextManager, Dict, Iterable, List, Optional, Tuple

from ..models import (
    Content,
    ContentTopics,
    Result,
    TopicRelationship,
    UserInteraction,
    UserTopicScore,
)


class ContentStore(ABC):
    """
    Read boundary to the platform's content catalogue.

    A missing item is an expected outcome: implementations return
    ``Result.failure(ContentNotFoundError(...))`` instead of raising.
    """

    @abstractmethod
    def get_content(self, content_id: str) -> Result[Content]:
        raise NotImplementedError


class ContentTopicsStore(ABC):
    """Memo of extracted topics per content item plus the global vocabulary."""

    @abstractmethod
    def get(self, content_id: str) -> Optional[ContentTopics]:
        raise NotImplementedError

    @abstractmethod
    def put(self, content_topics: ContentTopics) -> ContentTopics:
        """
        Store topics for a content item unless already present.

        Returns the stored record, which is the existing one if another
        writer got there first. Content topics are immutable once stored.
        """
        raise NotImplementedError

    @abstractmethod
    def vocabulary(self) -> List[str]:
        """All topics seen so far, sorted."""
        raise NotImplementedError


class InteractionLog(ABC):
    """Append-only record of interactions."""

    @abstractmethod
    def append(self, interaction: UserInteraction) -> None:
        raise NotImplementedError

    @abstractmethod
    def query(self, user_id: str, start_ms: int, end_ms: int) -> List[UserInteraction]:
        """Interactions of a user with ``start_ms <= timestamp <= end_ms``."""
        raise NotImplementedError

    @abstractmethod
    def query_topic(
        self,
        user_id: str,
        topic: str,
        start_ms: int,
        end_ms: int,
    ) -> List[UserInteraction]:
        """Like ``query`` but restricted to content carrying ``topic``."""
        raise NotImplementedError


class ScoreStore(ABC):
    """
    Versioned per-user score sets.

    Every successful ``replace_user_scores`` bumps the user's version.
    Writers pass the version they read; a mismatch raises
    ``ConcurrentWriteError`` so the caller can redo its read-modify-write.
    """

    @abstractmethod
    def get_user_scores(self, user_id: str) -> Tuple[Dict[str, UserTopicScore], int]:
        """Return ``(topic -> score, version)``."""
        raise NotImplementedError

    @abstractmethod
    def replace_user_scores(
        self,
        user_id: str,
        scores: Dict[str, UserTopicScore],
        expected_version: int,
    ) -> int:
        """Atomically replace the user's score set. Returns the new version."""
        raise NotImplementedError

    @abstractmethod
    def users(self) -> List[str]:
        raise NotImplementedError

    def get_score(self, user_id: str, topic: str) -> Optional[UserTopicScore]:
        scores, _ = self.get_user_scores(user_id)
        return scores.get(topic)


class RelationshipStore(ABC):
    """
    Shared store of topic relationships keyed by canonical pair.

    Concurrent writers must hold ``lock_for(key)`` around a
    read-modify-write of one pair.
    """

    @abstractmethod
    def get(self, key: Tuple[str, str]) -> Optional[TopicRelationship]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, relationship: TopicRelationship) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, key: Tuple[str, str]) -> None:
        raise NotImplementedError

    @abstractmethod
    def neighbors(self, topic: str) -> List[TopicRelationship]:
        """Direct (1-hop) relationships touching ``topic``."""
        raise NotImplementedError

    @abstractmethod
    def all(self) -> Iterable[TopicRelationship]:
        raise NotImplementedError

    @abstractmethod
    def lock_for(self, key: Tuple[str, str]) -> ContextManager:
        raise NotImplementedError

    @abstractmethod
    def claim_event(self, event_key: Tuple, at: int) -> bool:
        """
        Mark an interaction that happened at ``at`` as applied to the graph.

        Returns False when it was already claimed, which makes replays of
        the same event no-ops. Events older than the last ``expire_claims``
        horizon can no longer be checked and are refused as well.
        """
        raise NotImplementedError

    @abstractmethod
    def expire_claims(self, before: int) -> int:
        """Forget claims for events that happened before ``before``; returns how many."""
        raise NotImplementedError
