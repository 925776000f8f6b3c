from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..clock import Clock, SystemClock
from ..config import ScoringConfig
from ..decay import DecayEngine
from ..errors import (
    ConcurrentWriteError,
    ContentNotFoundError,
    InteractionValidationError,
)
from ..extraction import TopicExtractor, TopicResolver
from ..graph import TopicRelationshipGraph
from ..models import (
    ProcessingState,
    ScoringOutcome,
    UserInteraction,
    UserTopicScore,
)
from ..scoring import (
    BaseInteractionScorer,
    UserActivityClassifier,
    build_saturation_strategy,
)
from ..storage import (
    ContentStore,
    ContentTopicsStore,
    InMemoryContentStore,
    InMemoryContentTopicsStore,
    InMemoryInteractionLog,
    InMemoryRelationshipStore,
    InMemoryScoreStore,
    InteractionLog,
    RelationshipStore,
    ScoreStore,
    UserLockRegistry,
)
from .batch import process_batch

logger = logging.getLogger(__name__)

InteractionInput = Union[UserInteraction, Dict[str, Any]]


class TopicScoreAccumulator:
    """
    Orchestrates one interaction through the scoring pipeline.

    Pipeline
    --------
    RECEIVED → TOPICS_RESOLVED → DECAYED → BASE_SCORED →
    ACTIVITY_NORMALIZED → DIFFUSED → SATURATED → PERSISTED

    Any failure ends in REJECTED with no score mutated.

    Concurrency
    -----------
    Topic resolution (the only slow step) runs before the user lock is
    taken. Everything from decay to persistence runs under the user's
    lock, and a stale write detected by the versioned score store causes
    the whole read-modify-write to be redone.
    """

    def __init__(
        self,
        config: ScoringConfig,
        clock: Clock,
        content_store: ContentStore,
        topics_store: ContentTopicsStore,
        interaction_log: InteractionLog,
        score_store: ScoreStore,
        relationship_store: RelationshipStore,
        extractor: Optional[TopicExtractor] = None,
        locks: Optional[UserLockRegistry] = None,
    ) -> None:

        self._config = config
        self._clock = clock
        self._content = content_store
        self._log = interaction_log
        self._scores = score_store
        self._locks = locks or UserLockRegistry()

        self._scorer = BaseInteractionScorer(config)
        self._activity = UserActivityClassifier(interaction_log, clock, config)
        self._decay = DecayEngine(score_store, self._locks, clock, config)
        self._graph = TopicRelationshipGraph(relationship_store, clock, config)
        self._saturation = build_saturation_strategy(config)
        self._resolver = TopicResolver(topics_store, extractor, config)

    @classmethod
    def in_memory(
        cls,
        config: Optional[ScoringConfig] = None,
        clock: Optional[Clock] = None,
        extractor: Optional[TopicExtractor] = None,
    ) -> "TopicScoreAccumulator":
        """Build an accumulator over fresh in-memory stores."""
        topics_store = InMemoryContentTopicsStore()

        return cls(
            config=config or ScoringConfig(),
            clock=clock or SystemClock(),
            content_store=InMemoryContentStore(),
            topics_store=topics_store,
            interaction_log=InMemoryInteractionLog(topics_store),
            score_store=InMemoryScoreStore(),
            relationship_store=InMemoryRelationshipStore(),
            extractor=extractor,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> ScoringConfig:
        return self._config

    @property
    def content_store(self) -> ContentStore:
        return self._content

    @property
    def score_store(self) -> ScoreStore:
        return self._scores

    @property
    def interaction_log(self) -> InteractionLog:
        return self._log

    @property
    def graph(self) -> TopicRelationshipGraph:
        return self._graph

    @property
    def decay_engine(self) -> DecayEngine:
        return self._decay

    @property
    def activity(self) -> UserActivityClassifier:
        return self._activity

    @property
    def locks(self) -> UserLockRegistry:
        return self._locks

    # ==================================================================
    # MAIN PROCESSING
    # ==================================================================

    def process(self, interaction: InteractionInput) -> ScoringOutcome:

        start = time.monotonic()
        trail: List[ProcessingState] = [ProcessingState.RECEIVED]
        user_id, content_id = self._identity(interaction)

        try:
            event = self._validate(interaction)
            user_id, content_id = event.user_id, event.content_id

            content = self._content.get_content(event.content_id).unwrap()

            topics, used_fallback = self._resolver.resolve(content)
            trail.append(ProcessingState.TOPICS_RESOLVED)

            updated, trail = self._accumulate(event, topics, trail)

        except (InteractionValidationError, ContentNotFoundError) as e:
            logger.warning(f"[ACCUMULATOR] Rejected {user_id}/{content_id}: {e}")
            return self._rejected(user_id, content_id, trail, str(e), start)

        except ConcurrentWriteError as e:
            logger.warning(f"[ACCUMULATOR] Gave up after write conflicts: {e}")
            return self._rejected(user_id, content_id, trail, str(e), start)

        except Exception as e:
            logger.exception(f"[ACCUMULATOR] Unexpected failure for {user_id}/{content_id}")
            return self._rejected(user_id, content_id, trail, f"Unexpected failure: {e}", start)

        outcome = ScoringOutcome(
            user_id=user_id,
            content_id=content_id,
            state=ProcessingState.PERSISTED,
            trail=tuple(trail),
            scores=updated,
            topics=tuple(topics),
            used_fallback_topic=used_fallback,
            latency_ms=self._latency_ms(start),
        )

        logger.info(
            f"[ACCUMULATOR] {user_id}/{content_id} topics={list(topics)} "
            f"updated={sorted(updated)} in {outcome.latency_ms}ms"
        )
        return outcome

    def process_batch(self, interactions: Sequence[InteractionInput]) -> List[ScoringOutcome]:
        """Process many events; see ``process_batch``."""
        return process_batch(self, interactions)

    def close(self) -> None:
        """Stop the topic-extraction workers. Later extractions fall back to the sentinel."""
        self._resolver.close()
        logger.info("[ACCUMULATOR] Closed.")

    # ==================================================================
    # READ API
    # ==================================================================

    def top_topics(self, user_id: str, limit: int = 10) -> List[UserTopicScore]:
        """
        A user's topics ranked by ``interest − disinterest`` as of now.

        Decay is applied to the returned view only; nothing is written.
        """
        if limit < 1:
            return []

        current, _ = self._scores.get_user_scores(user_id)
        view, _ = self._decay.apply(current, self._clock.now_ms())

        ranked = sorted(view.values(), key=lambda row: (-row.net_score, row.topic))
        return ranked[:limit]

    # ==================================================================
    # PIPELINE STAGES
    # ==================================================================

    def _validate(self, interaction: InteractionInput) -> UserInteraction:

        if isinstance(interaction, UserInteraction):
            event = interaction
        else:
            event = UserInteraction.parse(interaction)

        now = self._clock.now_ms()
        if event.timestamp > now + self._config.future_tolerance_ms:
            raise InteractionValidationError(
                f"Interaction timestamp {event.timestamp} is in the future (now={now})"
            )

        return event

    def _accumulate(
        self,
        event: UserInteraction,
        topics: Sequence[str],
        prefix: List[ProcessingState],
    ) -> Tuple[Dict[str, UserTopicScore], List[ProcessingState]]:

        max_attempts = self._config.max_write_retries + 1

        with self._locks.lock_for(event.user_id):

            for attempt in range(max_attempts):
                trail = list(prefix)

                try:
                    updated = self._read_modify_write(event, topics, trail)
                except ConcurrentWriteError:
                    if attempt >= max_attempts - 1:
                        raise
                    logger.warning(
                        f"[ACCUMULATOR] Write conflict for {event.user_id}, "
                        f"retrying ({attempt + 1}/{max_attempts - 1})"
                    )
                    continue

                self._log.append(event)
                self._graph.reinforce(topics, event.event_key, event.user_id, event.timestamp)

                return updated, trail

        raise RuntimeError("Unknown accumulation state")

    def _read_modify_write(
        self,
        event: UserInteraction,
        topics: Sequence[str],
        trail: List[ProcessingState],
    ) -> Dict[str, UserTopicScore]:

        current, version = self._scores.get_user_scores(event.user_id)

        # --------------------------------------------------------------
        # Decay
        # --------------------------------------------------------------
        now = self._clock.now_ms()
        decayed, _ = self._decay.apply(current, now)
        trail.append(ProcessingState.DECAYED)

        # New baselines are valid as of the decay instant; a lagging event
        # must not date them earlier or the next read decays them again.
        stamp = max(now, event.timestamp)

        # --------------------------------------------------------------
        # Base score
        # --------------------------------------------------------------
        base = self._scorer.score(event.discovery_method, event.interaction_type)
        trail.append(ProcessingState.BASE_SCORED)

        # --------------------------------------------------------------
        # Activity normalization
        # --------------------------------------------------------------
        snapshot = self._activity.snapshot(event.user_id)
        magnitude = abs(base) * snapshot.activity_multiplier
        deltas: Dict[str, float] = {topic: magnitude for topic in topics} if magnitude > 0 else {}
        trail.append(ProcessingState.ACTIVITY_NORMALIZED)

        # --------------------------------------------------------------
        # Diffusion into related topics
        # --------------------------------------------------------------
        for target, boost in self._graph.diffuse(topics, base, snapshot.diffusion_factor).items():
            deltas.setdefault(target, abs(boost))
        trail.append(ProcessingState.DIFFUSED)

        # --------------------------------------------------------------
        # Saturation
        # --------------------------------------------------------------
        updated: Dict[str, UserTopicScore] = {}

        for topic, delta in deltas.items():
            row = decayed.get(topic) or UserTopicScore(
                user_id=event.user_id,
                topic=topic,
                updated_at=stamp,
            )

            interest = self._saturation.clamp(row.interest_score)
            disinterest = self._saturation.clamp(row.disinterest_score)

            if base > 0:
                interest = self._saturation.apply(interest, delta)
            else:
                disinterest = self._saturation.apply(disinterest, delta)

            updated[topic] = row.accumulated(
                interest,
                disinterest,
                at=max(row.updated_at, stamp),
            )

            logger.debug(
                f"[ACCUMULATOR] {event.user_id}/{topic}: "
                f"+{row.interest_score:.3f}/-{row.disinterest_score:.3f} → "
                f"+{interest:.3f}/-{disinterest:.3f} (delta={delta:.3f})"
            )

        trail.append(ProcessingState.SATURATED)

        # --------------------------------------------------------------
        # Persist
        # --------------------------------------------------------------
        merged = dict(decayed)
        merged.update(updated)

        self._scores.replace_user_scores(event.user_id, merged, version)
        trail.append(ProcessingState.PERSISTED)

        return updated

    # ==================================================================
    # RESULT BUILDERS
    # ==================================================================

    def _rejected(
        self,
        user_id: str,
        content_id: str,
        trail: List[ProcessingState],
        error: str,
        start_time: float,
    ) -> ScoringOutcome:

        return ScoringOutcome(
            user_id=user_id,
            content_id=content_id,
            state=ProcessingState.REJECTED,
            trail=tuple(trail) + (ProcessingState.REJECTED,),
            error=error,
            latency_ms=self._latency_ms(start_time),
        )

    @staticmethod
    def _identity(interaction: InteractionInput) -> Tuple[str, str]:
        if isinstance(interaction, UserInteraction):
            return interaction.user_id, interaction.content_id
        if isinstance(interaction, dict):
            return str(interaction.get("user_id") or ""), str(interaction.get("content_id") or "")
        return "", ""

    @staticmethod
    def _latency_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)
