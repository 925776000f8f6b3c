from .relationship_graph import TopicRelationshipGraph

__all__ = ["TopicRelationshipGraph"]
