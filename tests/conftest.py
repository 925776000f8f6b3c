"""Shared fixtures: a pinned clock, default config and fresh in-memory stores."""
import time
from typing import List, Optional, Sequence

import pytest

from topicaffinity import ManualClock, ScoringConfig, TopicScoreAccumulator, UserInteraction
from topicaffinity.clock import MS_PER_DAY
from topicaffinity.extraction import TopicExtractor
from topicaffinity.storage import (
    InMemoryContentTopicsStore,
    InMemoryInteractionLog,
    InMemoryRelationshipStore,
    InMemoryScoreStore,
    UserLockRegistry,
)


START_MS = 1000 * MS_PER_DAY


class StaticExtractor(TopicExtractor):
    """Extractor double: returns fixed topics, raises, or stalls."""

    def __init__(
        self,
        topics: Sequence[str] = ("general",),
        error: Optional[Exception] = None,
        delay_s: float = 0.0,
    ):
        self.topics = list(topics)
        self.error = error
        self.delay_s = delay_s
        self.calls: List[str] = []

    def extract_topics(self, existing_vocabulary, text):
        self.calls.append(text)
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return list(self.topics)


def make_event(
    user_id: str,
    content_id: str,
    timestamp: int,
    discovery_method: str = "SEARCH",
    interaction_type: str = "LIKE",
) -> UserInteraction:
    return UserInteraction(
        user_id=user_id,
        content_id=content_id,
        discovery_method=discovery_method,
        interaction_type=interaction_type,
        timestamp=timestamp,
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start_ms=START_MS)


@pytest.fixture
def config() -> ScoringConfig:
    return ScoringConfig()


@pytest.fixture
def topics_store() -> InMemoryContentTopicsStore:
    return InMemoryContentTopicsStore()


@pytest.fixture
def interaction_log(topics_store) -> InMemoryInteractionLog:
    return InMemoryInteractionLog(topics_store)


@pytest.fixture
def score_store() -> InMemoryScoreStore:
    return InMemoryScoreStore()


@pytest.fixture
def relationship_store() -> InMemoryRelationshipStore:
    return InMemoryRelationshipStore()


@pytest.fixture
def locks() -> UserLockRegistry:
    return UserLockRegistry()


@pytest.fixture
def extractor() -> StaticExtractor:
    return StaticExtractor(topics=("general",))


@pytest.fixture
def accumulator(config, clock, extractor) -> TopicScoreAccumulator:
    return TopicScoreAccumulator.in_memory(config=config, clock=clock, extractor=extractor)
