from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .topic_score import UserTopicScore


class ProcessingState(str, Enum):
    RECEIVED = "RECEIVED"
    TOPICS_RESOLVED = "TOPICS_RESOLVED"
    DECAYED = "DECAYED"
    BASE_SCORED = "BASE_SCORED"
    ACTIVITY_NORMALIZED = "ACTIVITY_NORMALIZED"
    DIFFUSED = "DIFFUSED"
    SATURATED = "SATURATED"
    PERSISTED = "PERSISTED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class ScoringOutcome:
    """
    Immutable record of one interaction passing through the accumulator.

    Attributes
    ----------
    user_id, content_id : str
        Identity of the processed event (may be empty for malformed input).

    state : ProcessingState
        Terminal state, either PERSISTED or REJECTED.

    trail : tuple of ProcessingState
        Every state the event passed through, in order.

    scores : dict
        Updated rows keyed by topic. Empty when rejected.

    topics : tuple of str
        Topics resolved for the content.

    error : Optional[str]
        Rejection reason.

    used_fallback_topic : bool
        True when topic extraction failed and the sentinel topic was used.

    latency_ms : int
        Processing time (monotonic).
    """

    user_id: str
    content_id: str
    state: ProcessingState
    trail: Tuple[ProcessingState, ...]
    scores: Dict[str, UserTopicScore] = field(default_factory=dict)
    topics: Tuple[str, ...] = ()
    error: Optional[str] = None
    used_fallback_topic: bool = False
    latency_ms: int = 0

    # ------------------------------------------------------------------
    # Convenience Properties
    # ------------------------------------------------------------------

    @property
    def is_persisted(self) -> bool:
        return self.state == ProcessingState.PERSISTED

    @property
    def is_rejected(self) -> bool:
        return self.state == ProcessingState.REJECTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "content_id": self.content_id,
            "state": self.state.value,
            "trail": [s.value for s in self.trail],
            "topics": list(self.topics),
            "scores": {
                topic: {
                    "interest": row.interest_score,
                    "disinterest": row.disinterest_score,
                    "updated_at": row.updated_at,
                }
                for topic, row in self.scores.items()
            },
            "error": self.error,
            "used_fallback_topic": self.used_fallback_topic,
            "latency_ms": self.latency_ms,
        }
