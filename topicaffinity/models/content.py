from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Content:
    """Content item as served by the content store."""

    content_id: str
    text: str
    existing_topics: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class ContentTopics:
    """Memoized topic labels for one content item."""

    content_id: str
    topics: Tuple[str, ...]

    def __post_init__(self):
        if not self.topics:
            raise ValueError(f"Content '{self.content_id}' must carry at least one topic")
