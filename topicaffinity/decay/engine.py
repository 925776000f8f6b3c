from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from ..clock import Clock
from ..config import ScoringConfig
from ..errors import ConcurrentWriteError
from ..models import UserTopicScore
from ..storage import ScoreStore, UserLockRegistry
from .strategies import DecayStrategy, build_decay_strategy

logger = logging.getLogger(__name__)


class DecayEngine:
    """
    Applies the configured decay strategy to a user's stored scores.

    Responsibilities
    ----------------
    • Decay every topic of a user from its baseline
    • Drop topics whose interest and disinterest both reached zero
    • Offer a standalone pass for schedulers (``decay_user`` / ``decay_all``)

    The accumulator calls ``apply`` while it already holds the user lock.
    The standalone passes take that lock themselves.
    """

    def __init__(
        self,
        scores: ScoreStore,
        locks: UserLockRegistry,
        clock: Clock,
        config: ScoringConfig,
        strategy: Optional[DecayStrategy] = None,
    ) -> None:
        self._scores = scores
        self._locks = locks
        self._clock = clock
        self._config = config
        self._strategy = strategy or build_decay_strategy(config)

    @property
    def strategy(self) -> DecayStrategy:
        return self._strategy

    # ------------------------------------------------------------------
    # In-pass decay (caller holds the user lock)
    # ------------------------------------------------------------------

    def apply(
        self,
        scores: Dict[str, UserTopicScore],
        now: int,
    ) -> Tuple[Dict[str, UserTopicScore], List[str]]:
        """
        Decay a score set.

        Returns
        -------
        Tuple[Dict[str, UserTopicScore], List[str]]
            Surviving rows and the topics pruned at zero.
        """
        decayed = self._strategy.apply(scores, now)

        pruned: List[str] = []
        if self._config.prune_decayed_topics:
            pruned = [topic for topic, row in decayed.items() if row.is_empty]
            for topic in pruned:
                del decayed[topic]

        for topic, row in decayed.items():
            before = scores[topic]
            if row.interest_score != before.interest_score or row.disinterest_score != before.disinterest_score:
                logger.debug(
                    f"[DECAY] {row.user_id}/{topic}: "
                    f"{before.interest_score:.3f}/{before.disinterest_score:.3f} → "
                    f"{row.interest_score:.3f}/{row.disinterest_score:.3f}"
                )

        return decayed, pruned

    # ------------------------------------------------------------------
    # Standalone passes
    # ------------------------------------------------------------------

    def decay_user(self, user_id: str) -> Dict[str, UserTopicScore]:
        """Decay and persist one user's scores under the user lock."""

        with self._locks.lock_for(user_id):

            for attempt in range(self._config.max_write_retries + 1):

                current, version = self._scores.get_user_scores(user_id)
                if not current:
                    return {}

                decayed, pruned = self.apply(current, self._clock.now_ms())

                if decayed == current:
                    return decayed

                try:
                    self._scores.replace_user_scores(user_id, decayed, version)
                except ConcurrentWriteError:
                    if attempt >= self._config.max_write_retries:
                        raise
                    logger.warning(f"[DECAY] Write conflict for {user_id}, retrying ({attempt + 1})")
                    continue

                if pruned:
                    logger.info(f"[DECAY] Pruned {len(pruned)} topics for {user_id}: {pruned}")

                return decayed

        return {}

    def decay_all(self) -> int:
        """Run ``decay_user`` over every known user. Returns the user count."""

        users = self._scores.users()
        for user_id in users:
            self.decay_user(user_id)

        logger.info(f"[DECAY] Decay pass complete for {len(users)} users.")
        return len(users)
