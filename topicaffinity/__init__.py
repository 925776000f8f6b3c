"""
User-topic interest scoring.

Turns a stream of content interactions into bounded, decaying,
relationship-aware affinity scores per user and topic.
"""

from .config import ScoringConfig
from .clock import Clock, ManualClock, SystemClock
from .errors import (
    ConcurrentWriteError,
    ContentNotFoundError,
    InteractionValidationError,
    TopicAffinityError,
    TopicExtractionError,
)
from .models import (
    ActivityLevel,
    Content,
    DiscoveryMethod,
    InteractionType,
    ProcessingState,
    ScoringOutcome,
    TopicRelationship,
    UserInteraction,
    UserTopicScore,
)
from .accumulator import TopicScoreAccumulator, process_batch

__all__ = [
    "ScoringConfig",
    "Clock",
    "ManualClock",
    "SystemClock",
    "TopicAffinityError",
    "InteractionValidationError",
    "ContentNotFoundError",
    "TopicExtractionError",
    "ConcurrentWriteError",
    "ActivityLevel",
    "Content",
    "DiscoveryMethod",
    "InteractionType",
    "ProcessingState",
    "ScoringOutcome",
    "TopicRelationship",
    "UserInteraction",
    "UserTopicScore",
    "TopicScoreAccumulator",
    "process_batch",
]
