from .core import TopicScoreAccumulator
from .batch import process_batch

__all__ = ["TopicScoreAccumulator", "process_batch"]
