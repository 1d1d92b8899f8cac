from typing import List, Optional

import httpx

from groupmatch.logging_config import get_logger
from groupmatch.services.llm.base import LLMError, LLMProvider, LLMResponse

logger = get_logger("llm.anthropic")

ANTHROPIC_VERSION = "2023-06-01"


def split_system_messages(messages: List[dict]) -> tuple[str, List[dict]]:
    """Pull system messages out into the top-level system field."""
    system_parts = []
    conversation = []
    for message in messages:
        if message.get("role") == "system":
            if message.get("content"):
                system_parts.append(message["content"])
            continue
        conversation.append({"role": message.get("role", "user"), "content": message.get("content", "")})
    return "\n\n".join(system_parts), conversation


class AnthropicProvider(LLMProvider):
    """Anthropic messages API provider."""

    def __init__(self, api_key: str, default_model: str = "claude-3-5-haiku-latest"):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = "https://api.anthropic.com/v1/messages"

    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        timeout = timeout_seconds if timeout_seconds is not None else 60.0
        system_prompt, conversation = split_system_messages(messages)

        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": conversation,
        }
        if system_prompt:
            payload["system"] = system_prompt
        logger.debug(f"Anthropic request: model={model}, messages_count={len(conversation)}")

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(
                    self.base_url,
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": ANTHROPIC_VERSION,
                        "content-type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"Anthropic request failed: {e!r}")
            raise LLMError(f"Anthropic request failed: {e!r}") from e

        if response.status_code != 200:
            logger.error(f"Anthropic error: {response.text}")
            raise LLMError(f"Anthropic API error: {response.status_code} - {response.text}")

        data = response.json()
        content = "".join(
            block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"
        )
        return LLMResponse(
            content=content,
            model=data.get("model", model),
            usage=data.get("usage"),
        )
