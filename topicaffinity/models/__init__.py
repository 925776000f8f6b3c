"""
Core data models for the scoring engine.

These dataclasses (and the pydantic interaction schema) are the values
that move between the scorer, decay engine, relationship graph, stores
and the accumulator.
"""

from .interaction import DiscoveryMethod, InteractionType, UserInteraction
from .topic_score import UserTopicScore
from .relationship import TopicRelationship, canonical_pair
from .content import Content, ContentTopics
from .result import Result
from .outcome import ProcessingState, ScoringOutcome
from .activity import ActivityLevel, ActivitySnapshot, UserActivityProfile

__all__ = [
    "DiscoveryMethod",
    "InteractionType",
    "UserInteraction",
    "UserTopicScore",
    "TopicRelationship",
    "canonical_pair",
    "Content",
    "ContentTopics",
    "Result",
    "ProcessingState",
    "ScoringOutcome",
    "ActivityLevel",
    "ActivitySnapshot",
    "UserActivityProfile",
]
