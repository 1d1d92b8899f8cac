from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


class LLMError(Exception):
    """Provider returned an error or unusable output."""


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        """Generate a completion for role/content messages (system messages allowed)."""
        pass
