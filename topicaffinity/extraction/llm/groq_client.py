import logging
import os

import requests

from .llm_client import LLMClient

logger = logging.getLogger(__name__)


class GroqClient(LLMClient):
    """Hosted Groq backend (OpenAI-compatible chat completions)."""

    def __init__(
        self,
        model: str = "llama-3.1-8b-instant",
        timeout_seconds: float = 30,
    ):
        self.model = model
        self.url = "https://api.groq.com/openai/v1/chat/completions"
        self.timeout = timeout_seconds

        self.api_key = os.getenv("GROQ_API_KEY")

        if not self.api_key:
            raise RuntimeError("GROQ_API_KEY environment variable not set")

    def complete(self, prompt: str) -> str:

        logger.debug(f"[TOPICS] Groq request model={self.model} prompt_length={len(prompt)}")

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0,
        }

        try:
            response = requests.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()

        except requests.Timeout:
            raise TimeoutError("Groq request timed out")

        except requests.RequestException as e:
            raise RuntimeError(f"Groq request failed: {e}") from e

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (KeyError, IndexError, ValueError, TypeError) as e:
            raise RuntimeError(f"Unexpected Groq response format: {e}") from e

        logger.debug(f"[TOPICS] Groq response: {content!r}")
        return content
