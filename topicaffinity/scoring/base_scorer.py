from typing import Union

from ..config import ScoringConfig
from ..models import DiscoveryMethod, InteractionType


class BaseInteractionScorer:
    """
    Maps a (discovery method, interaction type) pair to a signed raw score.

    Scoring Model
    -------------
    • Discovery method encodes intent strength (SEARCH > TRENDING > RECOMMENDATION)
    • Interaction type encodes sentiment (COMMENT > LIKE > DISLIKE > REPORT)
    • Raw score = intent × sentiment, clamped to ±base_score_limit

    The sign alone decides whether the event feeds interest or disinterest.
    Pure and deterministic.
    """

    def __init__(self, config: ScoringConfig):
        self._config = config

    def score(
        self,
        discovery_method: Union[DiscoveryMethod, str],
        interaction_type: Union[InteractionType, str],
    ) -> float:

        discovery = DiscoveryMethod(discovery_method)
        interaction = InteractionType(interaction_type)

        try:
            intent = self._config.discovery_values[discovery.value]
            sentiment = self._config.interaction_weights[interaction.value]
        except KeyError as e:
            raise ValueError(f"No scoring weight configured for {e}") from e

        limit = self._config.base_score_limit
        return max(-limit, min(limit, intent * sentiment))
