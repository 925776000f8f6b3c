from .extractor import LLMTopicExtractor, TopicExtractor
from .resolver import TopicResolver
from .llm import GroqClient, LLMClient, OllamaClient

__all__ = [
    "TopicExtractor",
    "LLMTopicExtractor",
    "TopicResolver",
    "LLMClient",
    "OllamaClient",
    "GroqClient",
]
