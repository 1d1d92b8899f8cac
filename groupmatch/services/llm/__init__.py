from groupmatch.services.llm.anthropic_provider import AnthropicProvider
from groupmatch.services.llm.base import LLMError, LLMProvider, LLMResponse
from groupmatch.services.llm.openai_provider import OpenAIProvider

__all__ = ["AnthropicProvider", "LLMError", "LLMProvider", "LLMResponse", "OpenAIProvider"]
