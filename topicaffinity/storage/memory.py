from __future__ import annotations

from collections import defaultdict
from threading import RLock
from typing import ContextManager, Dict, Iterable, List, Optional, Set, Tuple

from ..errors import ConcurrentWriteError, ContentNotFoundError
from ..models import (
    Content,
    ContentTopics,
    Result,
    TopicRelationship,
    UserInteraction,
    UserTopicScore,
)
from .base import (
    ContentStore,
    ContentTopicsStore,
    InteractionLog,
    RelationshipStore,
    ScoreStore,
)
from .locks import StripedLock


class InMemoryContentStore(ContentStore):

    def __init__(self) -> None:
        self._items: Dict[str, Content] = {}
        self._lock = RLock()

    def add(self, content: Content) -> None:
        with self._lock:
            self._items[content.content_id] = content

    def get_content(self, content_id: str) -> Result[Content]:
        with self._lock:
            content = self._items.get(content_id)

        if content is None:
            return Result.failure(ContentNotFoundError(content_id))

        return Result.success(content)


class InMemoryContentTopicsStore(ContentTopicsStore):

    def __init__(self) -> None:
        self._topics: Dict[str, ContentTopics] = {}
        self._vocabulary: Set[str] = set()
        self._lock = RLock()

    def get(self, content_id: str) -> Optional[ContentTopics]:
        with self._lock:
            return self._topics.get(content_id)

    def put(self, content_topics: ContentTopics) -> ContentTopics:
        with self._lock:
            existing = self._topics.get(content_topics.content_id)
            if existing is not None:
                return existing

            self._topics[content_topics.content_id] = content_topics
            self._vocabulary.update(content_topics.topics)
            return content_topics

    def vocabulary(self) -> List[str]:
        with self._lock:
            return sorted(self._vocabulary)


class InMemoryInteractionLog(InteractionLog):
    """
    Append-only log held in per-user lists.

    ``query_topic`` joins against a content-topics store, so it only sees
    content whose topics have already been resolved.
    """

    def __init__(self, content_topics: Optional[ContentTopicsStore] = None) -> None:
        self._rows: Dict[str, List[UserInteraction]] = defaultdict(list)
        self._content_topics = content_topics
        self._lock = RLock()

    def append(self, interaction: UserInteraction) -> None:
        with self._lock:
            self._rows[interaction.user_id].append(interaction)

    def query(self, user_id: str, start_ms: int, end_ms: int) -> List[UserInteraction]:
        with self._lock:
            rows = list(self._rows.get(user_id, ()))

        return [r for r in rows if start_ms <= r.timestamp <= end_ms]

    def query_topic(
        self,
        user_id: str,
        topic: str,
        start_ms: int,
        end_ms: int,
    ) -> List[UserInteraction]:
        if self._content_topics is None:
            raise RuntimeError("Topic queries require a content topics store")

        result = []
        for row in self.query(user_id, start_ms, end_ms):
            record = self._content_topics.get(row.content_id)
            if record is not None and topic in record.topics:
                result.append(row)
        return result

    def __len__(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._rows.values())


class InMemoryScoreStore(ScoreStore):

    def __init__(self) -> None:
        self._scores: Dict[str, Dict[str, UserTopicScore]] = {}
        self._versions: Dict[str, int] = {}
        self._lock = RLock()

    def get_user_scores(self, user_id: str) -> Tuple[Dict[str, UserTopicScore], int]:
        with self._lock:
            return dict(self._scores.get(user_id, {})), self._versions.get(user_id, 0)

    def replace_user_scores(
        self,
        user_id: str,
        scores: Dict[str, UserTopicScore],
        expected_version: int,
    ) -> int:
        with self._lock:
            current = self._versions.get(user_id, 0)
            if current != expected_version:
                raise ConcurrentWriteError(user_id, expected_version, current)

            for topic, row in scores.items():
                if row.user_id != user_id or row.topic != topic:
                    raise ValueError(f"Row {row!r} does not belong under {user_id}/{topic}")

            self._scores[user_id] = dict(scores)
            self._versions[user_id] = current + 1
            return current + 1

    def users(self) -> List[str]:
        with self._lock:
            return sorted(self._scores)


class InMemoryRelationshipStore(RelationshipStore):
    """
    Relationship rows plus a topic → keys adjacency index.

    Structural operations are guarded by one store lock. Pair-level
    read-modify-write sequences are serialized by striped locks handed out
    through ``lock_for``.

    Event claims are kept with their timestamp so ``expire_claims`` can
    drop those older than the replay window.
    """

    def __init__(self, stripes: int = 64) -> None:
        self._rows: Dict[Tuple[str, str], TopicRelationship] = {}
        self._adjacency: Dict[str, Set[Tuple[str, str]]] = defaultdict(set)
        self._claimed: Dict[Tuple, int] = {}
        self._claim_horizon: Optional[int] = None
        self._lock = RLock()
        self._stripes = StripedLock(stripes)

    def get(self, key: Tuple[str, str]) -> Optional[TopicRelationship]:
        with self._lock:
            return self._rows.get(key)

    def upsert(self, relationship: TopicRelationship) -> None:
        with self._lock:
            self._rows[relationship.key] = relationship
            self._adjacency[relationship.topic1].add(relationship.key)
            self._adjacency[relationship.topic2].add(relationship.key)

    def remove(self, key: Tuple[str, str]) -> None:
        with self._lock:
            if self._rows.pop(key, None) is None:
                return
            for topic in key:
                keys = self._adjacency.get(topic)
                if keys is not None:
                    keys.discard(key)
                    if not keys:
                        del self._adjacency[topic]

    def neighbors(self, topic: str) -> List[TopicRelationship]:
        with self._lock:
            return [self._rows[k] for k in self._adjacency.get(topic, ())]

    def all(self) -> Iterable[TopicRelationship]:
        with self._lock:
            return list(self._rows.values())

    def lock_for(self, key: Tuple[str, str]) -> ContextManager:
        return self._stripes.lock_for(key)

    def claim_event(self, event_key: Tuple, at: int) -> bool:
        with self._lock:
            if self._claim_horizon is not None and at < self._claim_horizon:
                return False
            if event_key in self._claimed:
                return False
            self._claimed[event_key] = at
            return True

    def expire_claims(self, before: int) -> int:
        with self._lock:
            if self._claim_horizon is None or before > self._claim_horizon:
                self._claim_horizon = before

            stale = [key for key, at in self._claimed.items() if at < self._claim_horizon]
            for key in stale:
                del self._claimed[key]

            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)
