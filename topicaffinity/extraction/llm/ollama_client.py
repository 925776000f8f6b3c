import requests

from .llm_client import LLMClient


class OllamaClient(LLMClient):
    """Local Ollama backend over its chat endpoint."""

    def __init__(
        self,
        model: str = "phi3:mini",
        base_url: str = "http://localhost:11434/api/chat",
        timeout_seconds: float = 30,
    ):
        self.model = model
        self.url = base_url
        self.timeout = timeout_seconds

    def complete(self, prompt: str) -> str:

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            "options": {
                "temperature": 0,
                "num_predict": 64,
            },
        }

        try:
            response = requests.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()

        except requests.Timeout:
            raise TimeoutError("Ollama request timed out")

        except requests.RequestException as e:
            raise RuntimeError(f"Ollama request failed: {e}") from e

        try:
            return response.json()["message"]["content"]
        except (KeyError, ValueError, TypeError) as e:
            raise RuntimeError(f"Unexpected Ollama response format: {e}") from e
