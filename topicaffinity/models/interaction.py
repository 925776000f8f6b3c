from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import InteractionValidationError


class DiscoveryMethod(str, Enum):
    """How the user reached the content. Encodes intent strength."""

    SEARCH = "SEARCH"
    TRENDING = "TRENDING"
    RECOMMENDATION = "RECOMMENDATION"


class InteractionType(str, Enum):
    LIKE = "LIKE"
    DISLIKE = "DISLIKE"
    COMMENT = "COMMENT"
    REPORT = "REPORT"
    VIEW = "VIEW"
    SHARE = "SHARE"
    REACTION = "REACTION"


class UserInteraction(BaseModel):
    """
    A single, immutable engagement event.

    Architectural Role
    ------------------
    Service layer → UserInteraction → TopicScoreAccumulator → InteractionLog

    Field validation happens on construction. Temporal validation (events
    from the future) needs a clock and is done by the accumulator.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    user_id: str = Field(min_length=1)
    content_id: str = Field(min_length=1)
    discovery_method: DiscoveryMethod
    interaction_type: InteractionType
    timestamp: int = Field(ge=0)
    """Epoch milliseconds."""

    @field_validator("discovery_method", "interaction_type", mode="before")
    @classmethod
    def _upper_enum(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    # ------------------------------------------------------------------
    # Parsing Boundary
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, payload: Dict[str, Any]) -> "UserInteraction":
        """
        Build an interaction from an untrusted payload.

        Raises
        ------
        InteractionValidationError
            If any field is missing, null or malformed.
        """
        if not isinstance(payload, dict):
            raise InteractionValidationError("Interaction payload must be a dictionary.")

        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise InteractionValidationError(f"Malformed interaction: {problems}") from e

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def event_key(self) -> Tuple[str, str, str, str, int]:
        """Identity used to make replays of the same event idempotent."""
        return (
            self.user_id,
            self.content_id,
            self.discovery_method.value,
            self.interaction_type.value,
            self.timestamp,
        )

    def __repr__(self) -> str:
        return (
            f"UserInteraction(user={self.user_id}, content={self.content_id}, "
            f"{self.discovery_method.value}/{self.interaction_type.value}, t={self.timestamp})"
        )
