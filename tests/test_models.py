import pytest

from topicaffinity import (
    ContentNotFoundError,
    DiscoveryMethod,
    InteractionValidationError,
    ScoringConfig,
    TopicRelationship,
    UserInteraction,
    UserTopicScore,
)
from topicaffinity.models import ContentTopics, Result, canonical_pair


class TestUserInteraction:

    def test_parse_normalizes_enums(self):
        event = UserInteraction.parse({
            "user_id": "alice",
            "content_id": "post-1",
            "discovery_method": " search ",
            "interaction_type": "Comment",
            "timestamp": 5,
        })
        assert event.discovery_method == DiscoveryMethod.SEARCH
        assert event.event_key == ("alice", "post-1", "SEARCH", "COMMENT", 5)

    @pytest.mark.parametrize(
        "payload",
        [
            {"user_id": "", "content_id": "c", "discovery_method": "SEARCH", "interaction_type": "LIKE", "timestamp": 1},
            {"user_id": "u", "content_id": "c", "discovery_method": "TELEPATHY", "interaction_type": "LIKE", "timestamp": 1},
            {"user_id": "u", "content_id": "c", "discovery_method": "SEARCH", "interaction_type": "LIKE", "timestamp": -1},
            {"user_id": "u", "content_id": None, "discovery_method": "SEARCH", "interaction_type": "LIKE", "timestamp": 1},
            "not a dict",
        ],
    )
    def test_parse_rejects_malformed(self, payload):
        with pytest.raises(InteractionValidationError):
            UserInteraction.parse(payload)

    def test_is_immutable(self):
        event = UserInteraction.parse({
            "user_id": "u", "content_id": "c", "discovery_method": "SEARCH",
            "interaction_type": "LIKE", "timestamp": 1,
        })
        with pytest.raises(Exception):
            event.user_id = "other"


class TestUserTopicScore:

    def test_baseline_defaults_to_scores(self):
        row = UserTopicScore("u", "jazz", 12.0, 3.0, 100)
        assert (row.baseline_interest, row.baseline_disinterest) == (12.0, 3.0)
        assert row.net_score == pytest.approx(9.0)

    def test_decayed_keeps_baseline_and_timestamp(self):
        row = UserTopicScore("u", "jazz", 12.0, 3.0, 100).decayed(6.0, 1.0)
        assert row.updated_at == 100
        assert row.baseline_interest == 12.0
        assert row.interest_score == 6.0

    def test_accumulated_resets_baseline(self):
        row = UserTopicScore("u", "jazz", 12.0, 3.0, 100).decayed(6.0, 1.0).accumulated(9.0, 1.0, at=200)
        assert row.updated_at == 200
        assert row.baseline_interest == 9.0

    def test_is_empty(self):
        assert UserTopicScore("u", "jazz").is_empty
        assert not UserTopicScore("u", "jazz", disinterest_score=0.5).is_empty


class TestTopicRelationship:

    def test_canonical_pair(self):
        assert canonical_pair("cooking", "baking") == ("baking", "cooking")
        assert canonical_pair("baking", "cooking") == ("baking", "cooking")

    def test_self_pair_rejected(self):
        with pytest.raises(ValueError):
            canonical_pair("jazz", "jazz")

    def test_non_canonical_rejected(self):
        with pytest.raises(ValueError):
            TopicRelationship("cooking", "baking", 1.0, 0)

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            TopicRelationship("baking", "cooking", -1.0, 0)

    def test_other(self):
        rel = TopicRelationship("baking", "cooking", 1.0, 0)
        assert rel.other("baking") == "cooking"
        with pytest.raises(KeyError):
            rel.other("jazz")


class TestResultAndContent:

    def test_result_unwrap(self):
        assert Result.success(3).unwrap() == 3
        with pytest.raises(ContentNotFoundError):
            Result.failure(ContentNotFoundError("x")).unwrap()

    def test_content_topics_must_not_be_empty(self):
        with pytest.raises(ValueError):
            ContentTopics("c", ())


class TestScoringConfig:

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_score": 0.0},
            {"min_score": -1.0},
            {"saturation_strategy": "sigmoid"},
            {"relationship_increment": "quadratic"},
            {"threshold_policy": "stop"},
            {"activity_horizon_weights": (0.5, 0.5)},
            {"min_multiplier": 3.0},
            {"relationship_decay_factor": 1.5},
            {"max_topics": 0},
            {"sentinel_topic": ""},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValueError):
            ScoringConfig(**overrides)

    def test_with_overrides_validates(self):
        with pytest.raises(ValueError):
            ScoringConfig().with_overrides(batch_workers=0)

    def test_with_overrides_copies(self):
        base = ScoringConfig()
        changed = base.with_overrides(decay_strategy="threshold")
        assert base.decay_strategy == "tiered"
        assert changed.decay_strategy == "threshold"
