import time
from typing import List, Optional

from groupmatch.config import settings
from groupmatch.logging_config import get_logger
from groupmatch.services.llm import AnthropicProvider, LLMError, LLMProvider, OpenAIProvider

logger = get_logger("llm_service")

DEFAULT_MAX_TOKENS = 1024

_llm_provider: Optional[LLMProvider] = None


def get_llm_provider() -> LLMProvider:
    """Get or create LLM provider instance."""
    global _llm_provider
    if _llm_provider is None:
        provider = settings.llm_provider.strip().lower()
        if provider == "openai":
            _llm_provider = OpenAIProvider(
                api_key=settings.openai_api_key,
                default_model=settings.llm_model or "gpt-4o-mini",
            )
        else:
            _llm_provider = AnthropicProvider(
                api_key=settings.anthropic_api_key,
                default_model=settings.llm_model or "claude-3-5-haiku-latest",
            )
    return _llm_provider


def set_llm_provider(provider: Optional[LLMProvider]) -> None:
    global _llm_provider
    _llm_provider = provider


def _compose_system_prompt(system_prompt: Optional[str], context_document: Optional[str]) -> Optional[str]:
    if not context_document:
        return system_prompt
    reference = f"Reference document (use it to ground your answer):\n{context_document}"
    return f"{system_prompt}\n\n{reference}" if system_prompt else reference


async def chat(
    messages: List[dict],
    *,
    system_prompt: Optional[str] = None,
    model: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    timeout_seconds: Optional[float] = None,
    context_document: Optional[str] = None,
) -> str:
    """Multi-turn completion. Raises LLMError on provider failure or empty output."""
    system = _compose_system_prompt(system_prompt, context_document)
    payload = [{"role": "system", "content": system}] if system else []
    payload.extend(m for m in messages if m.get("content"))

    started = time.monotonic()
    response = await get_llm_provider().generate(
        messages=payload,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_seconds=timeout_seconds if timeout_seconds is not None else settings.llm_timeout_seconds,
    )
    elapsed_ms = (time.monotonic() - started) * 1000
    logger.info(
        "LLM call finished",
        extra={"context": {"model": response.model, "elapsed_ms": round(elapsed_ms, 2), "messages": len(payload)}},
    )

    content = (response.content or "").strip()
    if not content:
        raise LLMError("LLM returned empty content")
    return content


async def generate_text(
    prompt: str,
    *,
    system_prompt: Optional[str] = None,
    model: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    timeout_seconds: Optional[float] = None,
    context_document: Optional[str] = None,
) -> str:
    """Single-prompt completion."""
    return await chat(
        [{"role": "user", "content": prompt}],
        system_prompt=system_prompt,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_seconds=timeout_seconds,
        context_document=context_document,
    )
