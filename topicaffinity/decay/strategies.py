from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Dict

from ..clock import MS_PER_DAY
from ..config import ScoringConfig
from ..models import UserTopicScore


def elapsed_days(updated_at: int, now: int) -> float:
    """Fractional days since ``updated_at``. Out-of-order rows count as zero."""
    return max(0, now - updated_at) / MS_PER_DAY


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up (2.5 → 3), unlike ``round``'s half-to-even."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


class DecayStrategy(ABC):
    """
    Time-based reduction of a user's stored scores.

    Every strategy decays from the row's baseline (its value as of
    ``updated_at``), so running a pass twice at the same instant yields the
    same scores as running it once. Timestamps and baselines are left
    untouched; only accumulation moves them.
    """

    name = "abstract"

    def __init__(self, config: ScoringConfig):
        self._config = config

    def apply(self, scores: Dict[str, UserTopicScore], now: int) -> Dict[str, UserTopicScore]:
        decayed = {}
        for topic, row in scores.items():
            days = elapsed_days(row.updated_at, now)
            decayed[topic] = row.decayed(
                self.decay_value(row.baseline_interest, days),
                self.decay_value(row.baseline_disinterest, days),
            )
        return decayed

    def decay_value(self, baseline: float, days: float) -> float:
        if baseline <= 0:
            return 0.0
        return self._bounded(baseline * self.factor(days))

    @abstractmethod
    def factor(self, days: float) -> float:
        """Multiplier in ``[0, 1]`` for ``days`` of inactivity."""
        raise NotImplementedError

    def _bounded(self, value: float) -> float:
        if not math.isfinite(value):
            return self._config.min_score
        return max(self._config.min_score, min(self._config.max_score, value))


# ----------------------------------------------------------------------
# Forgetting curve
# ----------------------------------------------------------------------

class TieredDecay(DecayStrategy):
    """
    Piecewise forgetting curve.

    Days            Retained
    ----            --------
    0-7             100%
    7-28            90% → 80%
    28-180          70% → 30%
    > 180           20% → 10% (reached at 360 days, then flat)

    Decayed values are rounded half up to ``decay_round_digits``, which lets
    small stale scores fall to zero and be pruned.
    """

    name = "tiered"

    def factor(self, days: float) -> float:
        if days <= 7:
            return 1.0
        if days <= 28:
            return 0.90 - (days - 7) / 21 * 0.10
        if days <= 180:
            return 0.70 - (days - 28) / 152 * 0.40
        return 0.20 - min((days - 180) / 180 * 0.10, 0.10)

    def decay_value(self, baseline: float, days: float) -> float:
        if baseline <= 0:
            return 0.0

        retained = self.factor(days)
        if retained >= 1.0:
            return self._bounded(baseline)

        value = round_half_up(baseline * retained, self._config.decay_round_digits)
        return self._bounded(max(0.0, value))


# ----------------------------------------------------------------------
# Half-life phases
# ----------------------------------------------------------------------

class ExponentialTieredDecay(DecayStrategy):
    """
    Half-life decay whose rate slows with inactivity.

    Phase 1 (≤ short_term_days):    0.5 ** (d / half_life)
    Phase 2 (≤ long_term_days):     continues at ``long_term_rate`` × speed
    Phase 3 (beyond):               continues at ``ultra_long_term_rate`` × speed

    Long-dormant preferences therefore keep a recognizable trace instead
    of vanishing. Non-zero scores never drop below ``minimum_score_floor``.
    """

    name = "exponential_tiered"

    def factor(self, days: float) -> float:
        cfg = self._config
        half_life = cfg.half_life_days

        short = min(days, cfg.short_term_days)
        long_ = min(max(0.0, days - cfg.short_term_days), cfg.long_term_days - cfg.short_term_days)
        ultra = max(0.0, days - cfg.long_term_days)

        exponent = (
            short
            + long_ * cfg.long_term_rate
            + ultra * cfg.ultra_long_term_rate
        ) / half_life

        return 0.5 ** exponent

    def decay_value(self, baseline: float, days: float) -> float:
        if baseline <= 0:
            return 0.0
        value = max(baseline * self.factor(days), self._config.minimum_score_floor)
        return self._bounded(value)


# ----------------------------------------------------------------------
# Ratio preserving
# ----------------------------------------------------------------------

class RatioPreservingDecay(DecayStrategy):
    """
    Scales every topic of a user at one shared daily rate.

    Each row decays by ``ratio_decay_rate ** days`` counted from its own
    ``updated_at``. Topics left untouched since the same instant are scaled
    by the same factor, so the ranking between them survives indefinitely,
    and accumulating one topic never moves the others.
    Scores bottom out at ``minimum_score_floor`` and are never removed.
    """

    name = "ratio_preserving"

    def factor(self, days: float) -> float:
        return self._config.ratio_decay_rate ** days

    def decay_value(self, baseline: float, days: float) -> float:
        if baseline <= 0:
            return 0.0
        return self._bounded(max(baseline * self.factor(days), self._config.minimum_score_floor))


# ----------------------------------------------------------------------
# Threshold
# ----------------------------------------------------------------------

class ThresholdDecay(DecayStrategy):
    """
    Exponential decay up to ``threshold_days``, then a policy:

    • pause     freeze at the threshold value
    • slow      continue at ``slow_decay_rate`` per day
    • continue  keep the normal rate
    """

    name = "threshold"

    def factor(self, days: float) -> float:
        cfg = self._config
        rate = cfg.ratio_decay_rate

        if days <= cfg.threshold_days or cfg.threshold_policy == "continue":
            return rate ** days

        at_threshold = rate ** cfg.threshold_days

        if cfg.threshold_policy == "pause":
            return at_threshold

        return at_threshold * cfg.slow_decay_rate ** (days - cfg.threshold_days)


_STRATEGIES = {
    TieredDecay.name: TieredDecay,
    ExponentialTieredDecay.name: ExponentialTieredDecay,
    RatioPreservingDecay.name: RatioPreservingDecay,
    ThresholdDecay.name: ThresholdDecay,
}


def build_decay_strategy(config: ScoringConfig) -> DecayStrategy:
    try:
        return _STRATEGIES[config.decay_strategy](config)
    except KeyError:
        raise ValueError(f"Unsupported decay_strategy: {config.decay_strategy}") from None
