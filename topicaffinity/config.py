from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Dict, Tuple


DECAY_STRATEGIES = {"tiered", "exponential_tiered", "ratio_preserving", "threshold"}
SATURATION_STRATEGIES = {"tanh", "tiered"}
RELATIONSHIP_INCREMENTS = {"logarithmic", "linear"}
THRESHOLD_POLICIES = {"pause", "slow", "continue"}


def _default_discovery_values() -> Dict[str, float]:
    return {
        "SEARCH": 4.0,
        "TRENDING": 3.0,
        "RECOMMENDATION": 2.0,
    }


def _default_interaction_weights() -> Dict[str, float]:
    return {
        "COMMENT": 2.0,
        "SHARE": 1.5,
        "LIKE": 1.0,
        "REACTION": 0.5,
        "VIEW": 0.1,
        "DISLIKE": -1.0,
        "REPORT": -2.0,
    }


def _default_activity_weights() -> Dict[str, float]:
    return {
        "VIEW": 1.0,
        "LIKE": 3.0,
        "DISLIKE": 3.0,
        "REACTION": 4.0,
        "REPORT": 5.0,
        "SHARE": 7.0,
        "COMMENT": 9.0,
    }


def _default_activity_thresholds() -> Dict[str, float]:
    return {
        "NO_ACTIVITY": 0,
        "LOW_ACTIVITY": 50,
        "LOW_MID_ACTIVITY": 200,
        "MID_ACTIVITY": 500,
        "MID_HIGH_ACTIVITY": 1000,
        "HIGH_ACTIVITY": 2000,
        "NOLIFER_ACTIVITY": 5000,
    }


def _default_diffusion_factors() -> Dict[str, float]:
    return {
        "NO_ACTIVITY": 1.5,
        "LOW_ACTIVITY": 1.4,
        "LOW_MID_ACTIVITY": 1.3,
        "MID_ACTIVITY": 1.0,
        "MID_HIGH_ACTIVITY": 0.8,
        "HIGH_ACTIVITY": 0.6,
        "NOLIFER_ACTIVITY": 0.4,
    }


@dataclass(frozen=True)
class ScoringConfig:
    """
    Flat configuration for every scoring component.

    One instance is built by the caller and handed to each component's
    constructor. It is immutable; use ``with_overrides`` to derive a
    variant.
    """

    # --- Score range ---
    min_score: float = 0.0
    max_score: float = 100.0

    # --- Base interaction scorer ---
    base_score_limit: float = 10.0
    discovery_values: Dict[str, float] = field(default_factory=_default_discovery_values)
    interaction_weights: Dict[str, float] = field(default_factory=_default_interaction_weights)

    # --- Activity classifier ---
    activity_horizons_days: Tuple[int, ...] = (1, 30, 365)
    activity_horizon_weights: Tuple[float, ...] = (0.5, 0.3, 0.2)
    activity_expected_max: Tuple[int, ...] = (20, 300, 2000)
    activity_reference_days: int = 30
    activity_weights: Dict[str, float] = field(default_factory=_default_activity_weights)
    activity_thresholds: Dict[str, float] = field(default_factory=_default_activity_thresholds)
    diffusion_factors: Dict[str, float] = field(default_factory=_default_diffusion_factors)
    total_interactions_weight: float = 0.7
    daily_average_weight: float = 0.3
    min_multiplier: float = 0.3
    max_multiplier: float = 2.0

    # --- Decay ---
    decay_strategy: str = "tiered"
    decay_round_digits: int = 0
    prune_decayed_topics: bool = True
    half_life_days: float = 30.0
    short_term_days: float = 30.0
    long_term_days: float = 180.0
    long_term_rate: float = 0.3
    ultra_long_term_rate: float = 0.1
    ratio_decay_rate: float = 0.98
    minimum_score_floor: float = 0.1
    threshold_days: float = 30.0
    threshold_policy: str = "slow"
    slow_decay_rate: float = 0.999

    # --- Saturation ---
    saturation_strategy: str = "tanh"
    saturation_steepness: float = 1.0

    # --- Relationship graph ---
    relationship_increment: str = "logarithmic"
    relationship_scale: float = 10.0
    relationship_max_weight: float = 100.0
    relationship_min_weight: float = 1.0
    relationship_decay_factor: float = 0.9
    relationship_activity_aware: bool = False
    relationship_expected_activity: float = 10.0
    relationship_history_days: int = 30
    diffusion_base_boost: float = 5.0
    reinforcement_claim_days: int = 30

    # --- Accumulator ---
    max_topics: int = 3
    sentinel_topic: str = "general"
    topic_extraction_timeout_s: float = 10.0
    future_tolerance_ms: int = 60_000
    max_write_retries: int = 3
    batch_workers: int = 4

    def __post_init__(self):
        self._validate()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        if not math.isfinite(self.min_score) or not math.isfinite(self.max_score):
            raise ValueError("Score range must be finite")

        if self.min_score < 0 or self.max_score <= self.min_score:
            raise ValueError(
                f"Invalid score range [{self.min_score}, {self.max_score}]"
            )

        if self.base_score_limit <= 0:
            raise ValueError("base_score_limit must be positive")

        if self.decay_strategy not in DECAY_STRATEGIES:
            raise ValueError(f"Unsupported decay_strategy: {self.decay_strategy}")

        if self.saturation_strategy not in SATURATION_STRATEGIES:
            raise ValueError(f"Unsupported saturation_strategy: {self.saturation_strategy}")

        if self.relationship_increment not in RELATIONSHIP_INCREMENTS:
            raise ValueError(f"Unsupported relationship_increment: {self.relationship_increment}")

        if self.threshold_policy not in THRESHOLD_POLICIES:
            raise ValueError(f"Unsupported threshold_policy: {self.threshold_policy}")

        horizons = (
            len(self.activity_horizons_days),
            len(self.activity_horizon_weights),
            len(self.activity_expected_max),
        )
        if len(set(horizons)) != 1 or horizons[0] == 0:
            raise ValueError(
                "activity_horizons_days, activity_horizon_weights and "
                "activity_expected_max must be non-empty and equally sized"
            )

        if any(w < 0 for w in self.activity_horizon_weights) or sum(self.activity_horizon_weights) <= 0:
            raise ValueError("activity_horizon_weights must be non-negative with a positive sum")

        if not 0 < self.min_multiplier <= self.max_multiplier:
            raise ValueError("Require 0 < min_multiplier <= max_multiplier")

        if set(self.activity_thresholds) != set(self.diffusion_factors):
            raise ValueError("activity_thresholds and diffusion_factors must cover the same levels")

        if not 0 < self.relationship_decay_factor <= 1:
            raise ValueError("relationship_decay_factor must be in (0, 1]")

        if self.relationship_max_weight <= 0 or self.relationship_min_weight < 0:
            raise ValueError("Invalid relationship weight bounds")

        if self.reinforcement_claim_days < 1:
            raise ValueError("reinforcement_claim_days must be >= 1")

        if self.max_topics < 1:
            raise ValueError("max_topics must be >= 1")

        if not self.sentinel_topic:
            raise ValueError("sentinel_topic must be a non-empty string")

        if self.max_write_retries < 0 or self.batch_workers < 1:
            raise ValueError("Invalid retry/worker settings")

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    @property
    def multiplier_range(self) -> float:
        return self.max_multiplier - self.min_multiplier

    def with_overrides(self, **overrides) -> "ScoringConfig":
        """Return a validated copy with the given fields replaced."""
        return replace(self, **overrides)
