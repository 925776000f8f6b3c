from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

from ..errors import TopicExtractionError
from .llm import LLMClient

logger = logging.getLogger(__name__)


class TopicExtractor(ABC):
    """Assigns topic labels to a piece of content."""

    @abstractmethod
    def extract_topics(self, existing_vocabulary: Sequence[str], text: str) -> List[str]:
        """
        Return between one and ``max_topics`` topics for ``text``.

        Raises
        ------
        TopicExtractionError
            If no usable topic could be produced.
        TimeoutError
            If the backend did not answer in time.
        """
        raise NotImplementedError


class LLMTopicExtractor(TopicExtractor):
    """
    Topic extraction through a chat model.

    The model is asked to reuse the existing vocabulary where it fits and
    to answer with a bare comma-separated list. Answers are matched back
    onto the vocabulary case-insensitively so the topic space does not
    fragment on capitalization.
    """

    MAX_CONTENT_CHARS = 2000

    INSTRUCTIONS = (
        "You are a topic extraction system. "
        "Your task is to identify the most relevant topics for the given content. "
        "First, try to select from the provided list of existing topics. "
        "Only create new topics if none of the existing topics are sufficiently relevant. "
        "Return {max_topics} topics maximum, fewer if appropriate. "
        "Format your response as a comma-separated list of topics with no explanation or additional text."
    )

    def __init__(self, client: LLMClient, max_topics: int = 3):
        if max_topics < 1:
            raise ValueError("max_topics must be >= 1")
        self._client = client
        self._max_topics = max_topics

    # ------------------------------------------------------------------
    # Prompt
    # ------------------------------------------------------------------

    def build_prompt(self, existing_vocabulary: Sequence[str], text: str) -> str:

        if len(text) > self.MAX_CONTENT_CHARS:
            text = text[: self.MAX_CONTENT_CHARS] + "..."

        return (
            f"{self.INSTRUCTIONS.format(max_topics=self._max_topics)}\n\n"
            f"EXISTING TOPICS: {', '.join(existing_vocabulary)}\n\n"
            f"CONTENT: {text}\n\n"
            f"Based on the content above, provide the most relevant topics "
            f"(maximum {self._max_topics}). Prefer existing topics when possible. "
            f"Response format: topic1, topic2, topic3"
        )

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_topics(self, existing_vocabulary: Sequence[str], text: str) -> List[str]:

        prompt = self.build_prompt(existing_vocabulary, text)

        try:
            raw = self._client.complete(prompt)
        except TimeoutError:
            raise
        except Exception as e:
            raise TopicExtractionError(f"{self._client.name} failed: {e}") from e

        topics = self.parse(raw, existing_vocabulary)

        if not topics:
            raise TopicExtractionError(f"{self._client.name} returned no usable topics: {raw!r}")

        logger.info(f"[TOPICS] Extracted topics: {topics}")
        return topics

    def parse(self, raw: str, existing_vocabulary: Sequence[str] = ()) -> List[str]:
        """Split a comma-separated answer into at most ``max_topics`` clean labels."""

        known = {t.lower(): t for t in existing_vocabulary}
        topics: List[str] = []

        for part in (raw or "").split(","):
            label = part.strip().strip("\"'`.").strip()
            if not label:
                continue

            label = known.get(label.lower(), label)
            if label not in topics:
                topics.append(label)

            if len(topics) >= self._max_topics:
                break

        return topics
