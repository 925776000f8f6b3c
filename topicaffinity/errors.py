class TopicAffinityError(Exception):
    """Base class for scoring engine failures."""
    pass


class InteractionValidationError(TopicAffinityError):
    """Raised when an interaction event is malformed or timestamped in the future."""
    pass


class ContentNotFoundError(TopicAffinityError):
    """Raised when an interaction references content the content store does not know."""

    def __init__(self, content_id: str):
        super().__init__(f"Content '{content_id}' not found")
        self.content_id = content_id


class TopicExtractionError(TopicAffinityError):
    """Raised when the topic extraction backend fails or returns nothing usable."""
    pass


class ConcurrentWriteError(TopicAffinityError):
    """Raised when a score set was modified between read and write."""

    def __init__(self, user_id: str, expected: int, actual: int):
        super().__init__(
            f"Score set for user '{user_id}' changed concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.user_id = user_id
        self.expected = expected
        self.actual = actual
