from __future__ import annotations

import math
from abc import ABC, abstractmethod

import numpy as np

from ..config import ScoringConfig


class SaturationStrategy(ABC):
    """
    Diminishing-returns transform for adding a delta to a bounded score.

    Contract
    --------
    • Output always lies in ``[min_score, max_score]``
    • Monotonic non-decreasing in ``delta``
    • Non-finite intermediate values collapse to ``min_score``
    """

    def __init__(self, config: ScoringConfig):
        self._min = config.min_score
        self._max = config.max_score

    def apply(self, current: float, delta: float) -> float:

        if delta < 0:
            raise ValueError(f"Saturation delta must be non-negative, got {delta}")

        if not math.isfinite(current) or not math.isfinite(delta):
            return self._min

        current = self.clamp(current)

        if delta == 0:
            return current

        value = float(self._saturate(current, delta))

        if not math.isfinite(value):
            return self._min

        return self.clamp(value)

    def clamp(self, value: float) -> float:
        if not math.isfinite(value):
            return self._min
        return max(self._min, min(self._max, value))

    @abstractmethod
    def _saturate(self, current: float, delta: float) -> float:
        raise NotImplementedError


class TanhSaturation(SaturationStrategy):
    """
    ``MAX × tanh(score × k / MAX)`` applied incrementally.

    The current score is mapped back onto the curve with ``atanh`` and the
    delta is added in curve space, so the result depends only on where the
    score currently sits, not on how it got there.
    """

    # atanh(1) is infinite; keep the inverse finite at the ceiling.
    _EDGE = 1.0 - 1e-12

    def __init__(self, config: ScoringConfig):
        super().__init__(config)
        self._k = config.saturation_steepness

    def _saturate(self, current: float, delta: float) -> float:
        span = self._max - self._min
        position = min((current - self._min) / span, self._EDGE)
        return self._min + span * np.tanh(np.arctanh(position) + self._k * delta / span)


class TieredSaturation(SaturationStrategy):
    """
    Piecewise multiplier chosen by the band the current score sits in.

    Band (fraction of range)    Multiplier
    ------------------------    ----------
    ≤ 10%                       1.0
    ≤ 30%                       0.8
    ≤ 60%                       0.6
    ≤ 90%                       0.3
    above                       0.1
    """

    BANDS = (
        (0.10, 1.0),
        (0.30, 0.8),
        (0.60, 0.6),
        (0.90, 0.3),
    )
    TOP_MULTIPLIER = 0.1

    def multiplier_for(self, current: float) -> float:
        position = (current - self._min) / (self._max - self._min)
        for upper, multiplier in self.BANDS:
            if position <= upper:
                return multiplier
        return self.TOP_MULTIPLIER

    def _saturate(self, current: float, delta: float) -> float:
        return current + delta * self.multiplier_for(current)


def build_saturation_strategy(config: ScoringConfig) -> SaturationStrategy:
    if config.saturation_strategy == "tanh":
        return TanhSaturation(config)
    if config.saturation_strategy == "tiered":
        return TieredSaturation(config)
    raise ValueError(f"Unsupported saturation_strategy: {config.saturation_strategy}")
