from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from ..errors import InteractionValidationError
from ..models import ScoringOutcome, UserInteraction

if TYPE_CHECKING:
    from .core import InteractionInput, TopicScoreAccumulator

logger = logging.getLogger(__name__)


def process_batch(
    accumulator: "TopicScoreAccumulator",
    interactions: Sequence["InteractionInput"],
    workers: Optional[int] = None,
) -> List[ScoringOutcome]:
    """
    Process a batch of interactions.

    Events are grouped by user and each user's events run serially in
    timestamp order. Users are spread across a thread pool. Each event
    succeeds or fails on its own; the result holds one outcome per input,
    in input order.
    """
    outcomes: List[Optional[ScoringOutcome]] = [None] * len(interactions)
    per_user: Dict[str, List[Tuple[int, UserInteraction]]] = defaultdict(list)

    for index, item in enumerate(interactions):
        try:
            event = item if isinstance(item, UserInteraction) else UserInteraction.parse(item)
        except InteractionValidationError:
            # Let the accumulator produce the REJECTED outcome and log it.
            outcomes[index] = accumulator.process(item)
            continue
        per_user[event.user_id].append((index, event))

    def run_user(events: List[Tuple[int, UserInteraction]]) -> List[Tuple[int, ScoringOutcome]]:
        ordered = sorted(events, key=lambda pair: (pair[1].timestamp, pair[0]))
        return [(index, accumulator.process(event)) for index, event in ordered]

    workers = workers or accumulator.config.batch_workers

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scoring-batch") as pool:
        futures = [pool.submit(run_user, events) for events in per_user.values()]
        for future in futures:
            for index, outcome in future.result():
                outcomes[index] = outcome

    persisted = sum(1 for o in outcomes if o is not None and o.is_persisted)
    logger.info(
        f"[ACCUMULATOR] Batch of {len(interactions)} events across {len(per_user)} users: "
        f"{persisted} persisted, {len(interactions) - persisted} rejected"
    )

    return outcomes
