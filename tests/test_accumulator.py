import math
from concurrent.futures import ThreadPoolExecutor

import pytest

from topicaffinity import (
    ConcurrentWriteError,
    Content,
    ProcessingState,
    ScoringConfig,
    TopicExtractionError,
    TopicScoreAccumulator,
)
from topicaffinity.clock import MS_PER_DAY
from topicaffinity.storage import (
    InMemoryContentStore,
    InMemoryContentTopicsStore,
    InMemoryInteractionLog,
    InMemoryRelationshipStore,
    InMemoryScoreStore,
)

from conftest import START_MS, StaticExtractor, make_event


FULL_TRAIL = (
    ProcessingState.RECEIVED,
    ProcessingState.TOPICS_RESOLVED,
    ProcessingState.DECAYED,
    ProcessingState.BASE_SCORED,
    ProcessingState.ACTIVITY_NORMALIZED,
    ProcessingState.DIFFUSED,
    ProcessingState.SATURATED,
    ProcessingState.PERSISTED,
)


class FlakyScoreStore(InMemoryScoreStore):
    """Raises a write conflict for the first ``failures`` writes."""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def replace_user_scores(self, user_id, scores, expected_version):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConcurrentWriteError(user_id, expected_version, expected_version + 1)
        return super().replace_user_scores(user_id, scores, expected_version)


def build(config, clock, score_store=None, extractor=None):
    topics_store = InMemoryContentTopicsStore()
    return TopicScoreAccumulator(
        config=config,
        clock=clock,
        content_store=InMemoryContentStore(),
        topics_store=topics_store,
        interaction_log=InMemoryInteractionLog(topics_store),
        score_store=score_store or InMemoryScoreStore(),
        relationship_store=InMemoryRelationshipStore(),
        extractor=extractor,
    )


@pytest.fixture
def catalogue(accumulator):
    store = accumulator.content_store
    store.add(Content("jazz-1", "jazz night", existing_topics=("jazz",)))
    store.add(Content("jazz-blues", "jazz and blues", existing_topics=("jazz", "blues")))
    store.add(Content("kitchen", "bread", existing_topics=("cooking", "baking")))
    store.add(Content("rock-1", "loud", existing_topics=("rock",)))
    store.add(Content("untagged", "something with no topics"))
    return store


# ----------------------------------------------------------------------
# Single events
# ----------------------------------------------------------------------

class TestProcess:

    def test_first_positive_event(self, accumulator, catalogue):
        outcome = accumulator.process(make_event("alice", "jazz-1", START_MS, "SEARCH", "COMMENT"))

        assert outcome.is_persisted
        assert outcome.trail == FULL_TRAIL
        assert outcome.topics == ("jazz",)

        row = outcome.scores["jazz"]
        # base 8 × multiplier 2.0 (no history), saturated from zero
        assert row.interest_score == pytest.approx(100 * math.tanh(0.16))
        assert row.disinterest_score == 0.0
        assert row.updated_at == START_MS
        assert accumulator.score_store.get_score("alice", "jazz") == row
        assert len(accumulator.interaction_log.query("alice", 0, START_MS)) == 1

    def test_negative_event_feeds_disinterest(self, accumulator, catalogue):
        outcome = accumulator.process(make_event("alice", "rock-1", START_MS, "TRENDING", "REPORT"))

        row = outcome.scores["rock"]
        assert row.interest_score == 0.0
        assert row.disinterest_score > 0.0

    def test_accepts_raw_payload(self, accumulator, catalogue):
        outcome = accumulator.process({
            "user_id": "alice",
            "content_id": "jazz-1",
            "discovery_method": "search",
            "interaction_type": "like",
            "timestamp": START_MS,
        })
        assert outcome.is_persisted

    def test_missing_content_rejected_without_mutation(self, accumulator, catalogue):
        outcome = accumulator.process(make_event("alice", "nope", START_MS))

        assert outcome.is_rejected
        assert outcome.trail == (ProcessingState.RECEIVED, ProcessingState.REJECTED)
        assert "nope" in outcome.error
        assert accumulator.score_store.users() == []
        assert accumulator.interaction_log.query("alice", 0, START_MS) == []

    def test_future_timestamp_rejected(self, accumulator, catalogue, config):
        outcome = accumulator.process(make_event("alice", "jazz-1", START_MS + config.future_tolerance_ms + 1))

        assert outcome.is_rejected
        assert "future" in outcome.error
        assert accumulator.score_store.users() == []

    def test_small_clock_skew_tolerated(self, accumulator, catalogue):
        outcome = accumulator.process(make_event("alice", "jazz-1", START_MS + 30_000))
        assert outcome.is_persisted

    def test_malformed_payload_rejected(self, accumulator, catalogue):
        outcome = accumulator.process({"user_id": "alice", "content_id": "jazz-1", "timestamp": START_MS})

        assert outcome.is_rejected
        assert outcome.user_id == "alice"
        assert "interaction_type" in outcome.error

    def test_extraction_failure_uses_sentinel(self, config, clock):
        accumulator = build(config, clock, extractor=StaticExtractor(error=TopicExtractionError("down")))
        accumulator.content_store.add(Content("untagged", "text"))

        outcome = accumulator.process(make_event("alice", "untagged", START_MS))

        assert outcome.is_persisted
        assert outcome.topics == ("general",)
        assert outcome.used_fallback_topic
        assert "general" in outcome.scores

    def test_extracted_topics_are_used(self, config, clock):
        accumulator = build(config, clock, extractor=StaticExtractor(topics=("gardening",)))
        accumulator.content_store.add(Content("untagged", "tomatoes"))

        outcome = accumulator.process(make_event("alice", "untagged", START_MS))

        assert outcome.topics == ("gardening",)
        assert not outcome.used_fallback_topic

    def test_outcome_serializes(self, accumulator, catalogue):
        data = accumulator.process(make_event("alice", "jazz-1", START_MS)).to_dict()

        assert data["state"] == "PERSISTED"
        assert data["trail"][-1] == "PERSISTED"
        assert set(data["scores"]) == {"jazz"}


# ----------------------------------------------------------------------
# Pipeline properties
# ----------------------------------------------------------------------

class TestPipeline:

    def test_scores_stay_bounded(self, accumulator, catalogue, clock, config):
        previous = 0.0
        for i in range(60):
            clock.advance(minutes=1)
            outcome = accumulator.process(make_event("alice", "jazz-1", clock.now_ms(), "SEARCH", "COMMENT"))
            score = outcome.scores["jazz"].interest_score
            assert config.min_score <= score <= config.max_score
            assert score >= previous
            previous = score

    def test_decay_runs_before_accumulation(self, accumulator, catalogue, clock):
        accumulator.process(make_event("alice", "jazz-1", START_MS, "SEARCH", "COMMENT"))
        first = accumulator.score_store.get_score("alice", "jazz")

        clock.advance(days=100)
        accumulator.process(make_event("alice", "rock-1", clock.now_ms()))

        decayed = accumulator.score_store.get_score("alice", "jazz")
        assert decayed.interest_score < first.interest_score
        assert decayed.updated_at == START_MS
        assert decayed.baseline_interest == first.interest_score

    def test_decayed_topics_are_pruned(self, accumulator, catalogue, clock):
        accumulator.process(make_event("alice", "jazz-1", START_MS, "SEARCH", "VIEW"))

        clock.advance(days=200)
        accumulator.process(make_event("alice", "rock-1", clock.now_ms()))

        scores, _ = accumulator.score_store.get_user_scores("alice")
        assert set(scores) == {"rock"}

    def test_casual_user_diffuses_more_than_power_user(self, accumulator, catalogue):
        for i in range(3):
            accumulator.graph.reinforce(["jazz", "blues"], ("seed", i), "seed", START_MS - i)

        for i in range(300):
            accumulator.interaction_log.append(
                make_event("power", f"other-{i}", START_MS - 1 - i * 60_000, "RECOMMENDATION", "COMMENT")
            )

        casual = accumulator.process(make_event("casual", "jazz-1", START_MS, "SEARCH", "LIKE"))
        power = accumulator.process(make_event("power", "jazz-1", START_MS, "SEARCH", "LIKE"))

        assert casual.scores["blues"].interest_score > power.scores["blues"].interest_score > 0

    def test_negative_event_diffuses_disinterest(self, accumulator, catalogue):
        accumulator.graph.reinforce(["jazz", "blues"], ("seed", 0), "seed", START_MS)

        outcome = accumulator.process(make_event("alice", "jazz-1", START_MS, "SEARCH", "DISLIKE"))

        assert outcome.scores["blues"].disinterest_score > 0
        assert outcome.scores["blues"].interest_score == 0

    def test_graph_reinforced_from_content_topics(self, accumulator, catalogue, clock):
        for _ in range(3):
            clock.advance(minutes=1)
            accumulator.process(make_event("alice", "kitchen", clock.now_ms()))

        rel = accumulator.graph.find("cooking", "baking")
        assert rel.weight == pytest.approx(math.log(4) * 10)

    def test_replayed_event_does_not_double_count_graph(self, accumulator, catalogue):
        event = make_event("alice", "kitchen", START_MS)

        accumulator.process(event)
        accumulator.process(event)

        assert accumulator.graph.find("cooking", "baking").co_occurrences == 1

    def test_top_topics(self, accumulator, catalogue, clock):
        accumulator.process(make_event("alice", "jazz-1", START_MS, "SEARCH", "COMMENT"))
        accumulator.process(make_event("alice", "kitchen", START_MS, "RECOMMENDATION", "VIEW"))
        accumulator.process(make_event("alice", "rock-1", START_MS, "SEARCH", "REPORT"))

        _, version = accumulator.score_store.get_user_scores("alice")
        ranked = accumulator.top_topics("alice", limit=10)

        assert ranked[0].topic == "jazz"
        assert ranked[-1].topic == "rock"
        assert [r.topic for r in accumulator.top_topics("alice", limit=1)] == ["jazz"]
        assert accumulator.score_store.get_user_scores("alice")[1] == version

    def test_interleaved_users_are_isolated(self, accumulator, catalogue):
        accumulator.process(make_event("alice", "jazz-1", START_MS))
        accumulator.process(make_event("bob", "rock-1", START_MS))

        assert set(accumulator.score_store.get_user_scores("alice")[0]) == {"jazz"}
        assert set(accumulator.score_store.get_user_scores("bob")[0]) == {"rock"}


# ----------------------------------------------------------------------
# Concurrency
# ----------------------------------------------------------------------

class TestConcurrency:

    def test_write_conflict_is_retried(self, config, clock):
        store = FlakyScoreStore(failures=1)
        accumulator = build(config, clock, score_store=store)
        accumulator.content_store.add(Content("jazz-1", "jazz", existing_topics=("jazz",)))

        outcome = accumulator.process(make_event("alice", "jazz-1", START_MS))

        assert outcome.is_persisted
        assert store.attempts == 2
        assert outcome.trail == FULL_TRAIL

    def test_persistent_conflict_rejects_cleanly(self, clock):
        config = ScoringConfig(max_write_retries=2)
        store = FlakyScoreStore(failures=100)
        accumulator = build(config, clock, score_store=store)
        accumulator.content_store.add(Content("kitchen", "bread", existing_topics=("cooking", "baking")))

        outcome = accumulator.process(make_event("alice", "kitchen", START_MS))

        assert outcome.is_rejected
        assert store.attempts == 3
        assert accumulator.interaction_log.query("alice", 0, START_MS) == []
        assert accumulator.graph.find("cooking", "baking") is None

    def test_parallel_events_for_one_user_are_serialized(self, accumulator, catalogue):
        events = [make_event("alice", "jazz-1", START_MS - i, "SEARCH", "LIKE") for i in range(20)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(accumulator.process, events))

        assert all(o.is_persisted for o in outcomes)
        assert len(accumulator.interaction_log.query("alice", 0, START_MS)) == 20
        _, version = accumulator.score_store.get_user_scores("alice")
        assert version == 20

    def test_close_stops_extraction_workers(self, config, clock):
        extractor = StaticExtractor(topics=("gardening",))
        accumulator = build(config, clock, extractor=extractor)
        accumulator.content_store.add(Content("untagged", "tomatoes"))

        accumulator.close()
        outcome = accumulator.process(make_event("alice", "untagged", START_MS))

        assert outcome.is_persisted
        assert outcome.used_fallback_topic
        assert extractor.calls == []


# ----------------------------------------------------------------------
# Decay across the full cycle
# ----------------------------------------------------------------------

DECAY_STRATEGIES = ["tiered", "exponential_tiered", "ratio_preserving", "threshold"]


def current_score(accumulator, user_id, topic):
    return {row.topic: row for row in accumulator.top_topics(user_id, limit=100)}[topic]


class TestDecayCycle:

    @pytest.fixture(params=DECAY_STRATEGIES)
    def engine(self, request, clock):
        accumulator = TopicScoreAccumulator.in_memory(
            config=ScoringConfig(decay_strategy=request.param),
            clock=clock,
        )
        accumulator.content_store.add(Content("jazz-1", "jazz night", existing_topics=("jazz",)))
        accumulator.content_store.add(Content("rock-1", "loud", existing_topics=("rock",)))
        yield accumulator
        accumulator.close()

    def test_unrelated_event_never_raises_untouched_topics(self, engine, clock):
        engine.process(make_event("alice", "jazz-1", START_MS, "SEARCH", "COMMENT"))
        original = current_score(engine, "alice", "jazz").interest_score

        clock.advance(days=100)
        before = current_score(engine, "alice", "jazz").interest_score

        engine.process(make_event("alice", "rock-1", clock.now_ms()))
        after = current_score(engine, "alice", "jazz").interest_score

        assert before < original
        assert after <= before
        assert after == pytest.approx(before)
        assert engine.score_store.get_score("alice", "jazz").interest_score == pytest.approx(before)

    def test_read_after_process_matches_persisted(self, engine, clock):
        engine.process(make_event("alice", "jazz-1", START_MS, "SEARCH", "COMMENT"))

        clock.advance(days=45)
        outcome = engine.process(make_event("alice", "jazz-1", clock.now_ms(), "SEARCH", "LIKE"))

        persisted = outcome.scores["jazz"]
        assert current_score(engine, "alice", "jazz").interest_score == pytest.approx(persisted.interest_score)
        assert engine.score_store.get_score("alice", "jazz") == persisted

    def test_lagging_event_is_not_decayed_twice(self, engine, clock):
        engine.process(make_event("alice", "jazz-1", START_MS, "SEARCH", "COMMENT"))

        clock.advance(days=30)
        late = clock.now_ms() - 20 * MS_PER_DAY
        outcome = engine.process(make_event("alice", "jazz-1", late, "SEARCH", "LIKE"))

        persisted = outcome.scores["jazz"]
        assert persisted.updated_at == clock.now_ms()
        assert current_score(engine, "alice", "jazz").interest_score == pytest.approx(persisted.interest_score)

    def test_out_of_order_events_keep_scores_consistent(self, engine, clock):
        clock.advance(days=10)
        now = clock.now_ms()

        for offset_days in (2, 9, 0, 5):
            outcome = engine.process(
                make_event("alice", "jazz-1", now - offset_days * MS_PER_DAY, "SEARCH", "LIKE")
            )
            persisted = outcome.scores["jazz"]
            assert current_score(engine, "alice", "jazz").interest_score == pytest.approx(persisted.interest_score)
            assert persisted.updated_at == now
