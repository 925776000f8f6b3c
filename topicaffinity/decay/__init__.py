from .strategies import (
    DecayStrategy,
    ExponentialTieredDecay,
    RatioPreservingDecay,
    ThresholdDecay,
    TieredDecay,
    build_decay_strategy,
    elapsed_days,
)
from .engine import DecayEngine

__all__ = [
    "DecayStrategy",
    "ExponentialTieredDecay",
    "RatioPreservingDecay",
    "ThresholdDecay",
    "TieredDecay",
    "build_decay_strategy",
    "elapsed_days",
    "DecayEngine",
]
