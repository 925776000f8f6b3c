from abc import ABC, abstractmethod


class LLMClient(ABC):
    """
    Text-completion transport used by LLM-backed topic extraction.

    Implementations only move a prompt to a backend and return its raw
    text. Prompt construction and answer parsing belong to the extractor.
    """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """
        Run one deterministic completion.

        Parameters
        ----------
        prompt : str
            Fully constructed prompt.

        Returns
        -------
        str
            Raw model output.

        Raises
        ------
        TimeoutError
            If the backend does not answer in time.
        """
        raise NotImplementedError
