import json

from ..models import TopicRelationship, UserTopicScore
from .base import RelationshipStore, ScoreStore


class StoreSnapshot:
    """
    Serialization of the logical persisted layout:

    ``user_id -> {topic -> (interest, disinterest, updated_at)}`` and
    ``(topic1, topic2) -> (weight, updated_at)``.

    Baselines and relationship bookkeeping travel along so that a restored
    store decays and reinforces exactly like the original.
    """

    @staticmethod
    def export(scores: ScoreStore, relationships: RelationshipStore) -> dict:
        users = {}
        for user_id in scores.users():
            rows, _ = scores.get_user_scores(user_id)
            users[user_id] = {
                topic: {
                    "interest": row.interest_score,
                    "disinterest": row.disinterest_score,
                    "updated_at": row.updated_at,
                    "baseline_interest": row.baseline_interest,
                    "baseline_disinterest": row.baseline_disinterest,
                }
                for topic, row in rows.items()
            }

        pairs = [
            {
                "topic1": rel.topic1,
                "topic2": rel.topic2,
                "weight": rel.weight,
                "updated_at": rel.updated_at,
                "co_occurrences": rel.co_occurrences,
                "recent": [list(event) for event in rel.recent],
            }
            for rel in sorted(relationships.all(), key=lambda r: r.key)
        ]

        return {"users": users, "relationships": pairs}

    @staticmethod
    def save(scores: ScoreStore, relationships: RelationshipStore, path: str) -> None:
        with open(path, "w") as f:
            json.dump(StoreSnapshot.export(scores, relationships), f)

    @staticmethod
    def restore(data: dict, scores: ScoreStore, relationships: RelationshipStore) -> None:
        if not isinstance(data, dict):
            raise ValueError("Snapshot data must be a dictionary.")

        for user_id, topics in data.get("users", {}).items():
            rows = {
                topic: UserTopicScore(
                    user_id=user_id,
                    topic=topic,
                    interest_score=float(v["interest"]),
                    disinterest_score=float(v["disinterest"]),
                    updated_at=int(v["updated_at"]),
                    baseline_interest=v.get("baseline_interest"),
                    baseline_disinterest=v.get("baseline_disinterest"),
                )
                for topic, v in topics.items()
            }
            _, version = scores.get_user_scores(user_id)
            scores.replace_user_scores(user_id, rows, version)

        for r in data.get("relationships", []):
            relationships.upsert(
                TopicRelationship(
                    topic1=r["topic1"],
                    topic2=r["topic2"],
                    weight=float(r["weight"]),
                    updated_at=int(r["updated_at"]),
                    co_occurrences=int(r.get("co_occurrences", 0)),
                    recent=tuple((int(ts), str(uid)) for ts, uid in r.get("recent", [])),
                )
            )

    @staticmethod
    def load(path: str, scores: ScoreStore, relationships: RelationshipStore) -> None:
        with open(path) as f:
            data = json.load(f)
        StoreSnapshot.restore(data, scores, relationships)
