from __future__ import annotations

import logging
import math
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Tuple

from ..clock import MS_PER_DAY, Clock
from ..config import ScoringConfig
from ..models import TopicRelationship, canonical_pair
from ..storage import RelationshipStore

logger = logging.getLogger(__name__)


class TopicRelationshipGraph:
    """
    Symmetric co-occurrence graph between topics.

    Architectural Role
    ------------------
    Accumulator → reinforce(topics)     strengthen bonds on co-occurrence
    Accumulator → diffuse(topics)       spread a share of an event to neighbors
    Scheduler   → decay_relationships() weaken and prune stale bonds

    The graph holds no state of its own. Rows live in the injected
    RelationshipStore; every read-modify-write of a pair runs under the
    store's per-pair lock.
    """

    def __init__(self, store: RelationshipStore, clock: Clock, config: ScoringConfig) -> None:
        self._store = store
        self._clock = clock
        self._config = config

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, topic_a: str, topic_b: str) -> Optional[TopicRelationship]:
        """Order-independent lookup. A topic never relates to itself."""
        if topic_a == topic_b:
            return None
        return self._store.get(canonical_pair(topic_a, topic_b))

    def neighbors(self, topic: str) -> List[TopicRelationship]:
        """1-hop relationships of ``topic``, strongest first."""
        return sorted(
            self._store.neighbors(topic),
            key=lambda rel: (-rel.weight, rel.other(topic)),
        )

    # ------------------------------------------------------------------
    # Reinforcement
    # ------------------------------------------------------------------

    def reinforce(
        self,
        topics: Iterable[str],
        event_key: Tuple,
        user_id: str,
        at: int,
    ) -> List[TopicRelationship]:
        """
        Strengthen every unordered pair of ``topics``.

        Reinforcement is claimed per ``event_key``; replaying the same
        interaction leaves the graph unchanged. Events older than
        ``reinforcement_claim_days`` at the last decay pass are ignored.
        """
        unique = sorted(set(topics))
        if len(unique) < 2:
            return []

        if not self._store.claim_event(event_key, at):
            logger.debug(f"[GRAPH] Event {event_key} already applied or expired, skipping reinforcement.")
            return []

        updated = [self._reinforce_pair(a, b, user_id, at) for a, b in combinations(unique, 2)]

        logger.info(f"[GRAPH] Reinforced {len(updated)} pairs for topics {unique}")
        return updated

    def _reinforce_pair(self, topic_a: str, topic_b: str, user_id: str, at: int) -> TopicRelationship:

        key = canonical_pair(topic_a, topic_b)

        with self._store.lock_for(key):
            existing = self._store.get(key)

            count = existing.co_occurrences if existing else 0
            weight = existing.weight if existing else 0.0
            updated_at = max(existing.updated_at, at) if existing else at
            recent = existing.recent if existing else ()

            relationship = TopicRelationship(
                topic1=key[0],
                topic2=key[1],
                weight=self._increment(weight, count),
                updated_at=updated_at,
                co_occurrences=count + 1,
                recent=self._window(recent + ((at, user_id),), updated_at),
            )

            self._store.upsert(relationship)

        logger.debug(f"[GRAPH] {key}: {weight:.3f} → {relationship.weight:.3f} (n={count + 1})")
        return relationship

    def _increment(self, weight: float, count: int) -> float:
        """
        Weight after one more co-occurrence.

        The logarithmic increment adds ``scale × (ln(2 + n) − ln(1 + n))``,
        which sums to ``ln(1 + n) × scale`` for an undecayed bond and keeps
        any decay already applied.
        """
        cfg = self._config

        if cfg.relationship_increment == "linear":
            step = 1.0
        else:
            step = cfg.relationship_scale * (math.log(2 + count) - math.log(1 + count))

        return min(weight + step, cfg.relationship_max_weight)

    def _window(self, events: Tuple[Tuple[int, str], ...], now: int) -> Tuple[Tuple[int, str], ...]:
        horizon = now - self._config.relationship_history_days * MS_PER_DAY
        return tuple(sorted(e for e in events if e[0] >= horizon))

    # ------------------------------------------------------------------
    # Diffusion
    # ------------------------------------------------------------------

    def diffuse(
        self,
        resolved_topics: Iterable[str],
        sign: float,
        diffusion_factor: float,
    ) -> Dict[str, float]:
        """
        Signed boosts for topics related to, but outside, ``resolved_topics``.

        ``boost = base_boost × (weight / max_weight) × diffusion_factor``

        Topics are visited in the given order and their neighbors by
        descending weight. Each target takes the first relationship found.
        """
        if sign == 0:
            return {}

        direction = 1.0 if sign > 0 else -1.0
        resolved = list(dict.fromkeys(resolved_topics))
        excluded = set(resolved)

        cfg = self._config
        boosts: Dict[str, float] = {}

        for topic in resolved:
            for rel in self.neighbors(topic):
                target = rel.other(topic)
                if target in excluded or target in boosts:
                    continue

                boost = cfg.diffusion_base_boost * (rel.weight / cfg.relationship_max_weight) * diffusion_factor
                if boost > 0:
                    boosts[target] = direction * boost

        if boosts:
            logger.debug(f"[GRAPH] Diffusion from {resolved}: {boosts}")

        return boosts

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def decay_relationships(self, now: Optional[int] = None) -> Tuple[int, List[Tuple[str, str]]]:
        """
        Weaken every relationship and prune those below ``relationship_min_weight``.

        Event claims older than ``reinforcement_claim_days`` are expired in
        the same pass.

        Returns
        -------
        Tuple[int, List[Tuple[str, str]]]
            Number of relationships kept and the keys pruned.
        """
        now = self._clock.now_ms() if now is None else now
        cfg = self._config

        kept = 0
        pruned: List[Tuple[str, str]] = []

        for snapshot in list(self._store.all()):
            key = snapshot.key

            with self._store.lock_for(key):
                rel = self._store.get(key)
                if rel is None:
                    continue

                weight = rel.weight * self.decay_factor(rel, now)

                if not math.isfinite(weight) or weight < cfg.relationship_min_weight:
                    self._store.remove(key)
                    pruned.append(key)
                    continue

                self._store.upsert(
                    TopicRelationship(
                        topic1=rel.topic1,
                        topic2=rel.topic2,
                        weight=weight,
                        updated_at=rel.updated_at,
                        co_occurrences=rel.co_occurrences,
                        recent=self._window(rel.recent, now),
                    )
                )
                kept += 1

        expired = self._store.expire_claims(now - cfg.reinforcement_claim_days * MS_PER_DAY)

        logger.info(
            f"[GRAPH] Relationship decay: kept {kept}, pruned {len(pruned)}, "
            f"expired {expired} event claims"
        )
        return kept, pruned

    def decay_factor(self, rel: TopicRelationship, now: int) -> float:
        """
        Multiplier for one decay pass.

        Activity-aware mode rewards bonds reinforced recently and by many
        users, and adds a small penalty for time since the last update:

        activity        = i7 + 0.5 × i30 + 2 × unique_users_30d
        volume_modifier = 0.7 + 0.3 × min(1, activity / expected_activity)
        time_penalty    = min(days_since_update × 0.002, 0.08)
        """
        cfg = self._config
        base = cfg.relationship_decay_factor

        if not cfg.relationship_activity_aware:
            return base

        week = now - 7 * MS_PER_DAY
        month = now - 30 * MS_PER_DAY

        i7 = sum(1 for ts, _ in rel.recent if week <= ts <= now)
        i30 = sum(1 for ts, _ in rel.recent if month <= ts <= now)
        users = len({uid for ts, uid in rel.recent if month <= ts <= now})

        activity = i7 * 1.0 + i30 * 0.5 + users * 2.0
        volume_modifier = 0.7 + 0.3 * min(1.0, activity / cfg.relationship_expected_activity)

        days = max(0, now - rel.updated_at) / MS_PER_DAY
        time_penalty = min(days * 0.002, 0.08)

        return base * volume_modifier * (1.0 - time_penalty)
