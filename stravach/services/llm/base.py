from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


class LLMError(Exception):
    """Provider call failed or returned a body that could not be decoded."""


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.9,
        max_tokens: int = 300,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        """Generate response from LLM."""
        pass
