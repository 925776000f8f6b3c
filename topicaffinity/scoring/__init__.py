from .base_scorer import BaseInteractionScorer
from .activity import UserActivityClassifier
from .saturation import (
    SaturationStrategy,
    TanhSaturation,
    TieredSaturation,
    build_saturation_strategy,
)

__all__ = [
    "BaseInteractionScorer",
    "UserActivityClassifier",
    "SaturationStrategy",
    "TanhSaturation",
    "TieredSaturation",
    "build_saturation_strategy",
]
