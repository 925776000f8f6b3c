import logging

from topicaffinity import Content, ManualClock, ScoringConfig, TopicScoreAccumulator
from topicaffinity.clock import MS_PER_DAY
from topicaffinity.extraction import OllamaClient, LLMTopicExtractor

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

# --------------------------------
# Engine
# --------------------------------

clock = ManualClock(start_ms=400 * MS_PER_DAY)
config = ScoringConfig()

# Content below carries its own topics, so the extractor is only hit for
# the untagged post. Without a local Ollama it falls back to "general".
extractor = LLMTopicExtractor(OllamaClient(model="mistral", timeout_seconds=5), max_topics=config.max_topics)

engine = TopicScoreAccumulator.in_memory(config=config, clock=clock, extractor=extractor)

# --------------------------------
# Catalogue
# --------------------------------

catalogue = engine.content_store
catalogue.add(Content("post-1", "Late night jazz session", existing_topics=("jazz", "blues")))
catalogue.add(Content("post-2", "Slow blues guitar lesson", existing_topics=("blues", "guitar")))
catalogue.add(Content("post-3", "Jazz standards for beginners", existing_topics=("jazz", "piano")))
catalogue.add(Content("post-4", "Weekend sourdough bake, with photos of the crumb"))

# --------------------------------
# Interactions
# --------------------------------

events = [
    {"user_id": "alice", "content_id": "post-1", "discovery_method": "SEARCH", "interaction_type": "LIKE"},
    {"user_id": "alice", "content_id": "post-2", "discovery_method": "RECOMMENDATION", "interaction_type": "COMMENT"},
    {"user_id": "bob", "content_id": "post-3", "discovery_method": "TRENDING", "interaction_type": "SHARE"},
    {"user_id": "bob", "content_id": "post-1", "discovery_method": "TRENDING", "interaction_type": "DISLIKE"},
    {"user_id": "alice", "content_id": "post-4", "discovery_method": "SEARCH", "interaction_type": "VIEW"},
    {"user_id": "alice", "content_id": "missing", "discovery_method": "SEARCH", "interaction_type": "LIKE"},
]

for event in events:
    clock.advance(hours=1)
    outcome = engine.process({**event, "timestamp": clock.now_ms()})
    print(outcome.state.value, outcome.topics, outcome.error or "")

# --------------------------------
# Two weeks later
# --------------------------------

clock.advance(days=14)

for user in ("alice", "bob"):
    print(f"\n{user}:")
    for row in engine.top_topics(user, limit=5):
        print(f"  {row.topic:<10} +{row.interest_score:6.2f}  -{row.disinterest_score:6.2f}")

kept, pruned = engine.graph.decay_relationships()
print(f"\nRelationships kept={kept} pruned={pruned}")

engine.close()
