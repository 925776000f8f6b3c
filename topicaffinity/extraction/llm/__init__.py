"""
Transports for LLM-backed topic extraction.

LLMClient is the seam; OllamaClient talks to a local server and
GroqClient to the hosted API.
"""

from .llm_client import LLMClient
from .ollama_client import OllamaClient
from .groq_client import GroqClient

__all__ = [
    "LLMClient",
    "OllamaClient",
    "GroqClient",
]
