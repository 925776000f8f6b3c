from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class ActivityLevel(str, Enum):
    """Ordered from casual to power user."""

    NO_ACTIVITY = "NO_ACTIVITY"
    LOW_ACTIVITY = "LOW_ACTIVITY"
    LOW_MID_ACTIVITY = "LOW_MID_ACTIVITY"
    MID_ACTIVITY = "MID_ACTIVITY"
    MID_HIGH_ACTIVITY = "MID_HIGH_ACTIVITY"
    HIGH_ACTIVITY = "HIGH_ACTIVITY"
    NOLIFER_ACTIVITY = "NOLIFER_ACTIVITY"

    @property
    def rank(self) -> int:
        return list(ActivityLevel).index(self)


@dataclass(frozen=True)
class UserActivityProfile:
    """Derived activity metrics for one time horizon. Never persisted."""

    horizon_days: int
    total_interactions: int
    daily_average: float
    unique_active_days: int
    weighted_count: float
    activity_level: ActivityLevel
    inverse_multiplier: float


@dataclass(frozen=True)
class ActivitySnapshot:
    """
    Multi-horizon view of a user's activity.

    ``activity_multiplier`` scales the per-event delta (lower for active
    users). ``diffusion_factor`` scales cross-topic boosts (higher for
    casual users).
    """

    user_id: str
    profiles: Tuple[UserActivityProfile, ...]
    activity_level: ActivityLevel
    activity_multiplier: float
    diffusion_factor: float

    @property
    def has_activity(self) -> bool:
        return any(p.total_interactions > 0 for p in self.profiles)
