from dataclasses import dataclass
from typing import List, Optional

from groupmatch.services.result import Result

PROCESSING_FALLBACK_RESPONSE = "I'm having trouble processing that. Let's continue!"
CONTINUATION_FALLBACK_RESPONSE = "I encountered an error, but let's continue with the interview!"
GENERIC_PROMPT_RESPONSE = "Sorry, I lost my train of thought there. Could you say that again?"


@dataclass
class AgentReply:
    text: str
    sent: bool = False
    rich_content_blocks: Optional[List[dict]] = None
    media_url: Optional[str] = None


def ensure_reply(result: Optional[Result], fallback: str = PROCESSING_FALLBACK_RESPONSE) -> AgentReply:
    """Collapse any processing outcome into a reply with non-empty text."""
    fallback = fallback if fallback and fallback.strip() else PROCESSING_FALLBACK_RESPONSE
    if result is None or not result.ok or result.value is None:
        return AgentReply(text=fallback)

    value = result.value
    if isinstance(value, AgentReply):
        if value.sent:
            return value
        if value.text and value.text.strip():
            return value
        return AgentReply(
            text=fallback,
            rich_content_blocks=value.rich_content_blocks,
            media_url=value.media_url,
        )
    text = str(value).strip()
    return AgentReply(text=text or fallback)
