from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class UserTopicScore:
    """
    A user's affinity toward one topic.

    ``interest_score`` and ``disinterest_score`` are the current (decayed)
    values. ``baseline_interest`` and ``baseline_disinterest`` hold the
    values as of ``updated_at``; decay is always recomputed from the
    baseline, so running it twice never compounds.

    Instances are immutable. Mutations produce new rows via the helpers
    below.
    """

    user_id: str
    topic: str
    interest_score: float = 0.0
    disinterest_score: float = 0.0
    updated_at: int = 0
    baseline_interest: Optional[float] = None
    baseline_disinterest: Optional[float] = None

    def __post_init__(self):
        if self.baseline_interest is None:
            object.__setattr__(self, "baseline_interest", self.interest_score)
        if self.baseline_disinterest is None:
            object.__setattr__(self, "baseline_disinterest", self.disinterest_score)

    # ------------------------------------------------------------------
    # Convenience Properties
    # ------------------------------------------------------------------

    @property
    def net_score(self) -> float:
        return self.interest_score - self.disinterest_score

    @property
    def is_empty(self) -> bool:
        return self.interest_score <= 0 and self.disinterest_score <= 0

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def decayed(self, interest: float, disinterest: float) -> "UserTopicScore":
        """Materialize a decayed value. Baseline and timestamp are kept."""
        return replace(self, interest_score=interest, disinterest_score=disinterest)

    def accumulated(self, interest: float, disinterest: float, at: int) -> "UserTopicScore":
        """Record a real accumulation: the new values become the baseline."""
        return UserTopicScore(
            user_id=self.user_id,
            topic=self.topic,
            interest_score=interest,
            disinterest_score=disinterest,
            updated_at=at,
        )

    def __repr__(self) -> str:
        return (
            f"UserTopicScore({self.user_id}/{self.topic}: "
            f"+{self.interest_score:.3f} -{self.disinterest_score:.3f})"
        )
