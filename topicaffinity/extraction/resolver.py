from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional, Tuple

from ..config import ScoringConfig
from ..errors import TopicExtractionError
from ..models import Content, ContentTopics
from ..storage import ContentTopicsStore
from .extractor import TopicExtractor

logger = logging.getLogger(__name__)


class TopicResolver:
    """
    Resolves the topic set of a content item.

    Resolution Order
    ----------------
    1. Memoized topics from the content-topics store
    2. Topics the content already carries
    3. The extraction backend, bounded by ``topic_extraction_timeout_s``

    If extraction fails or times out the sentinel topic is returned and
    nothing is memoized, so a later event for the same content retries
    extraction.
    """

    def __init__(
        self,
        topics_store: ContentTopicsStore,
        extractor: Optional[TopicExtractor],
        config: ScoringConfig,
        max_workers: int = 4,
    ) -> None:
        self._store = topics_store
        self._extractor = extractor
        self._config = config
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="topic-extraction",
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, content: Content) -> Tuple[Tuple[str, ...], bool]:
        """
        Returns
        -------
        Tuple[Tuple[str, ...], bool]
            The topics and whether the sentinel fallback was used.
        """
        memo = self._store.get(content.content_id)
        if memo is not None:
            return memo.topics, False

        if content.existing_topics:
            topics = tuple(dict.fromkeys(t.strip() for t in content.existing_topics if t and t.strip()))
            if topics:
                return self._memoize(content.content_id, topics), False

        try:
            topics = self._extract(content)
        except (FutureTimeoutError, TimeoutError):
            logger.warning(
                f"[TOPICS] Extraction for '{content.content_id}' timed out after "
                f"{self._config.topic_extraction_timeout_s}s; using '{self._config.sentinel_topic}'"
            )
            return (self._config.sentinel_topic,), True
        except Exception as e:
            logger.warning(
                f"[TOPICS] Extraction for '{content.content_id}' failed ({e}); "
                f"using '{self._config.sentinel_topic}'"
            )
            return (self._config.sentinel_topic,), True

        return self._memoize(content.content_id, topics), False

    def close(self) -> None:
        self._pool.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _extract(self, content: Content) -> Tuple[str, ...]:

        if self._extractor is None:
            raise TopicExtractionError("No topic extractor configured")

        vocabulary = self._store.vocabulary()
        future = self._pool.submit(self._extractor.extract_topics, vocabulary, content.text)

        topics = future.result(timeout=self._config.topic_extraction_timeout_s)

        cleaned = tuple(dict.fromkeys(t.strip() for t in topics if t and t.strip()))
        if not cleaned:
            raise TopicExtractionError("Extractor returned no topics")

        return cleaned[: self._config.max_topics]

    def _memoize(self, content_id: str, topics: Tuple[str, ...]) -> Tuple[str, ...]:
        stored = self._store.put(ContentTopics(content_id=content_id, topics=topics))
        logger.debug(f"[TOPICS] {content_id} → {stored.topics}")
        return stored.topics
