import asyncio
import re
from typing import List, Optional

from groupmatch.config import settings
from groupmatch.logging_config import get_logger
from groupmatch.services.messaging_service import MessagingClient

logger = get_logger("history_service")

ASSISTANT_SENDER_TYPES = {"agent", "assistant", "bot", "ai"}


def _message_role(raw: dict) -> str:
    if raw.get("role") in {"user", "assistant"}:
        return raw["role"]
    if raw.get("isAgent") or raw.get("isFromAgent"):
        return "assistant"
    sender_type = str(raw.get("senderType") or raw.get("sender_type") or "").lower()
    return "assistant" if sender_type in ASSISTANT_SENDER_TYPES else "user"


def _strip_agent_prefix(content: str, agent_name: Optional[str]) -> str:
    if not agent_name:
        return content
    return re.sub(rf"^\s*{re.escape(agent_name)}\s*:\s*", "", content, flags=re.IGNORECASE)


def clean_history(raw_messages: List[dict], agent_name: Optional[str] = None) -> List[dict]:
    """Normalize platform messages into chronological role/content pairs."""
    cleaned = []
    for raw in raw_messages or []:
        if not isinstance(raw, dict):
            continue
        content = raw.get("content") or raw.get("text") or ""
        if not isinstance(content, str):
            continue
        role = _message_role(raw)
        if role == "assistant":
            content = _strip_agent_prefix(content, agent_name)
        content = content.strip()
        if content:
            cleaned.append({"role": role, "content": content, "_ts": raw.get("createdAt") or raw.get("timestamp")})

    if all(item["_ts"] is not None for item in cleaned):
        cleaned.sort(key=lambda item: str(item["_ts"]))
    return [{"role": item["role"], "content": item["content"]} for item in cleaned]


async def fetch_conversation_history(
    client: MessagingClient,
    chat_id: str,
    *,
    limit: Optional[int] = None,
    timeout_seconds: Optional[float] = None,
    agent_name: Optional[str] = None,
) -> List[dict]:
    """Recent history for a chat; an empty list when the platform is slow or failing."""
    limit = limit or settings.history_limit
    timeout = timeout_seconds if timeout_seconds is not None else settings.history_timeout_seconds
    try:
        raw_messages = await asyncio.wait_for(client.get_message_history(chat_id, limit=limit), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(
            "History fetch timed out, continuing without history",
            extra={"context": {"chat_id": chat_id, "timeout_seconds": timeout}},
        )
        return []
    except Exception as exc:
        logger.warning(
            "History fetch failed, continuing without history",
            extra={"context": {"chat_id": chat_id, "error": str(exc)}},
        )
        return []
    return clean_history(raw_messages, agent_name=agent_name)[-limit:]


def build_chat_messages(history: List[dict], text: str, max_messages: Optional[int] = None) -> List[dict]:
    """History plus the new user message, starting on a user turn."""
    messages = [m for m in (history or []) if m.get("content")]
    if messages and messages[-1]["role"] == "user" and messages[-1]["content"].strip() == (text or "").strip():
        messages = messages[:-1]
    if max_messages:
        messages = messages[-max_messages:]
    while messages and messages[0]["role"] != "user":
        messages.pop(0)
    if text and text.strip():
        messages.append({"role": "user", "content": text.strip()})
    return messages
