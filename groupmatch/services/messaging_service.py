"""Client for the chat platform that delivers agent replies."""

from typing import List, Optional

import httpx

from groupmatch.config import settings
from groupmatch.logging_config import get_logger

logger = get_logger("messaging_service")


class MessagingError(Exception):
    """Chat platform request failed."""


def is_test_chat(chat_id: Optional[str]) -> bool:
    """Test chats never receive real sends."""
    if not chat_id:
        return False
    return any(chat_id.startswith(prefix) for prefix in settings.test_chat_prefixes)


class MessagingClient:
    def __init__(
        self,
        agent_id: str,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.agent_id = agent_id
        self.api_key = api_key if api_key is not None else settings.messaging_api_key
        self.api_url = (api_url or settings.messaging_api_url).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.messaging_timeout_seconds

    def _headers(self) -> dict:
        return {"X-API-Key": self.api_key, "Content-Type": "application/json"}

    async def _post_send(self, chat_id: str, payload: dict) -> bool:
        if not self.api_key or not self.agent_id:
            logger.error("Messaging credentials missing", extra={"context": {"chat_id": chat_id}})
            return False
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    f"{self.api_url}/{self.agent_id}/send",
                    headers=self._headers(),
                    json=payload,
                )
            logger.info(
                f"Send response: status={response.status_code}, chat_id={chat_id}",
                extra={"context": {"chat_id": chat_id, "status": response.status_code}},
            )
            return 200 <= response.status_code < 300
        except httpx.HTTPError as e:
            logger.error(f"Error sending message: {e}", extra={"context": {"chat_id": chat_id}})
            return False

    async def send_message(
        self,
        chat_id: str,
        content: str,
        rich_content_blocks: Optional[List[dict]] = None,
    ) -> bool:
        """Send a text reply. Returns False on any delivery failure."""
        if not content:
            logger.warning(f"send_message: empty content for chat_id={chat_id}")
            return False
        payload = {"chatId": chat_id, "content": content, "metadata": {"source": "groupmatch"}}
        if rich_content_blocks:
            payload["richContentBlocks"] = rich_content_blocks
        return await self._post_send(chat_id, payload)

    async def send_media_message(
        self,
        chat_id: str,
        content: str,
        media_url: str,
        content_type: str = "image/png",
    ) -> bool:
        """Send a reply with one attached media item."""
        payload = {
            "chatId": chat_id,
            "content": content or "",
            "media": {"url": media_url, "contentType": content_type},
            "metadata": {"source": "groupmatch"},
        }
        return await self._post_send(chat_id, payload)

    async def get_message_history(self, chat_id: str, limit: int = 10) -> List[dict]:
        """Raw platform messages for a chat. Raises MessagingError on failure."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(
                    f"{self.api_url}/{self.agent_id}/chat/{chat_id}",
                    headers=self._headers(),
                    params={"limit": limit},
                )
        except httpx.HTTPError as e:
            raise MessagingError(f"History request failed: {e}") from e

        if response.status_code != 200:
            raise MessagingError(f"History API error: {response.status_code} - {response.text[:200]}")

        data = response.json()
        if isinstance(data, list):
            return data
        return data.get("messages") or data.get("data") or []
