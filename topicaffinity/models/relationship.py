from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


def canonical_pair(topic_a: str, topic_b: str) -> Tuple[str, str]:
    """Order two topics lexically so (A, B) and (B, A) share one key."""
    if topic_a == topic_b:
        raise ValueError(f"A topic cannot relate to itself: {topic_a!r}")
    return (topic_a, topic_b) if topic_a < topic_b else (topic_b, topic_a)


@dataclass(frozen=True)
class TopicRelationship:
    """
    Symmetric co-occurrence bond between two topics.

    ``topic1 < topic2`` always holds. ``recent`` is a bounded window of
    ``(timestamp, user_id)`` reinforcement events read by activity-aware
    decay.
    """

    topic1: str
    topic2: str
    weight: float
    updated_at: int
    co_occurrences: int = 0
    recent: Tuple[Tuple[int, str], ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.topic1 < self.topic2:
            raise ValueError(
                f"Relationship keys must be canonical: {self.topic1!r} < {self.topic2!r}"
            )
        if self.weight < 0:
            raise ValueError("Relationship weight must be non-negative")

    @property
    def key(self) -> Tuple[str, str]:
        return (self.topic1, self.topic2)

    def other(self, topic: str) -> str:
        """Return the opposite end of the bond."""
        if topic == self.topic1:
            return self.topic2
        if topic == self.topic2:
            return self.topic1
        raise KeyError(f"Topic {topic!r} is not part of {self.key}")
