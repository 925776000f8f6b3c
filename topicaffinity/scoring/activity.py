from __future__ import annotations

import logging

import numpy as np

from ..clock import MS_PER_DAY, Clock
from ..config import ScoringConfig
from ..models import ActivityLevel, ActivitySnapshot, UserActivityProfile
from ..storage import InteractionLog

logger = logging.getLogger(__name__)


class UserActivityClassifier:
    """
    Derives a user's activity level and per-event multiplier from the
    interaction log.

    Activity Model
    --------------
    • Each horizon (daily / monthly / yearly) is measured back from now
    • Volume and daily consistency are normalized against the horizon's
      expected maximum and inverted into a multiplier
    • Horizons are blended with a weighted average

    Busy users get a smaller multiplier (each event means less) and a
    smaller diffusion factor (their tastes are already well mapped).

    Architectural Role
    ------------------
    Read-only. Nothing computed here is ever persisted.
    """

    def __init__(self, interactions: InteractionLog, clock: Clock, config: ScoringConfig):
        self._interactions = interactions
        self._clock = clock
        self._config = config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def snapshot(self, user_id: str) -> ActivitySnapshot:

        now = self._clock.now_ms()
        cfg = self._config

        profiles = [
            self.profile(user_id, days, expected_max, now)
            for days, expected_max in zip(cfg.activity_horizons_days, cfg.activity_expected_max)
        ]

        weights = np.asarray(cfg.activity_horizon_weights, dtype=float)

        multiplier = float(np.average([p.inverse_multiplier for p in profiles], weights=weights))
        multiplier = max(cfg.min_multiplier, min(cfg.max_multiplier, multiplier))

        rescaled = [self._rescale(p.weighted_count, p.horizon_days) for p in profiles]
        combined_count = float(np.average(rescaled, weights=weights))

        level = self.classify(combined_count)

        if not any(p.total_interactions for p in profiles):
            level = ActivityLevel.NO_ACTIVITY

        diffusion_factor = float(cfg.diffusion_factors[level.value])

        logger.debug(
            f"[ACTIVITY] user={user_id} level={level.value} "
            f"multiplier={multiplier:.3f} diffusion={diffusion_factor:.2f}"
        )

        return ActivitySnapshot(
            user_id=user_id,
            profiles=tuple(profiles),
            activity_level=level,
            activity_multiplier=multiplier,
            diffusion_factor=diffusion_factor,
        )

    def profile(self, user_id: str, days: int, expected_max: int, now: int) -> UserActivityProfile:
        """Activity metrics over ``[now - days, now]``."""

        rows = self._interactions.query(user_id, now - days * MS_PER_DAY, now)

        total = len(rows)
        daily_average = total / max(1, days)
        active_days = len({r.timestamp // MS_PER_DAY for r in rows})

        weights = self._config.activity_weights
        weighted = float(sum(weights.get(r.interaction_type.value, 1.0) for r in rows))

        return UserActivityProfile(
            horizon_days=days,
            total_interactions=total,
            daily_average=daily_average,
            unique_active_days=active_days,
            weighted_count=weighted,
            activity_level=self.classify(self._rescale(weighted, days)),
            inverse_multiplier=self.inverse_multiplier(total, daily_average, expected_max),
        )

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(self, weighted_count: float) -> ActivityLevel:
        """Highest level whose threshold the weighted count reaches."""

        thresholds = self._config.activity_thresholds
        level = ActivityLevel.NO_ACTIVITY

        for candidate in ActivityLevel:
            if weighted_count >= thresholds[candidate.value]:
                level = candidate

        return level

    def inverse_multiplier(self, total: int, daily_average: float, expected_max: int) -> float:
        """
        Map volume onto ``[min_multiplier, max_multiplier]``, inverted.

        An empty horizon yields ``max_multiplier``.
        """
        cfg = self._config

        if total == 0:
            return cfg.max_multiplier

        normalized_total = min(1.0, total / expected_max)

        max_daily = expected_max / cfg.activity_reference_days
        normalized_daily = min(1.0, daily_average / max_daily)

        activity_score = (
            normalized_total * cfg.total_interactions_weight
            + normalized_daily * cfg.daily_average_weight
        )

        multiplier = cfg.max_multiplier - activity_score * cfg.multiplier_range
        return max(cfg.min_multiplier, min(cfg.max_multiplier, multiplier))

    def _rescale(self, weighted_count: float, days: int) -> float:
        return weighted_count * self._config.activity_reference_days / max(1, days)
