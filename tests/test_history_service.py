import asyncio
from unittest.mock import AsyncMock, Mock

from groupmatch.services.history_service import build_chat_messages, clean_history, fetch_conversation_history
from groupmatch.services.messaging_service import MessagingError


def _client(side_effect=None, return_value=None):
    client = Mock()
    client.get_message_history = AsyncMock(side_effect=side_effect, return_value=return_value)
    return client


class TestCleanHistory:
    def test_roles_and_prefix_stripping(self):
        raw = [
            {"content": "hi", "senderType": "user", "createdAt": "2024-01-01T10:00:00"},
            {"content": "Juno: Question 1 of 10", "isAgent": True, "createdAt": "2024-01-01T10:00:05"},
            {"content": "   ", "senderType": "user", "createdAt": "2024-01-01T10:00:06"},
        ]
        assert clean_history(raw, agent_name="Juno") == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "Question 1 of 10"},
        ]

    def test_sorted_chronologically_when_timestamps_present(self):
        raw = [
            {"content": "second", "role": "assistant", "createdAt": "2024-01-01T10:00:05"},
            {"content": "first", "role": "user", "createdAt": "2024-01-01T10:00:00"},
        ]
        assert [m["content"] for m in clean_history(raw)] == ["first", "second"]

    def test_skips_non_text_entries(self):
        assert clean_history([{"content": {"type": "card"}}, "junk", {"text": "ok"}]) == [
            {"role": "user", "content": "ok"}
        ]


class TestFetchConversationHistory:
    def test_success(self):
        client = _client(return_value=[{"content": "hello", "role": "user"}])
        history = asyncio.run(fetch_conversation_history(client, "chat-1", limit=5, timeout_seconds=1))
        assert history == [{"role": "user", "content": "hello"}]
        client.get_message_history.assert_awaited_once_with("chat-1", limit=5)

    def test_timeout_returns_empty(self):
        async def slow(chat_id, limit):
            await asyncio.sleep(5)
            return [{"content": "late"}]

        client = Mock()
        client.get_message_history = slow
        history = asyncio.run(fetch_conversation_history(client, "chat-1", timeout_seconds=0.05))
        assert history == []

    def test_error_returns_empty(self):
        client = _client(side_effect=MessagingError("History API error: 500"))
        assert asyncio.run(fetch_conversation_history(client, "chat-1", timeout_seconds=1)) == []

    def test_limit_applied_to_cleaned_history(self):
        raw = [{"content": f"m{i}", "role": "user"} for i in range(8)]
        client = _client(return_value=raw)
        history = asyncio.run(fetch_conversation_history(client, "chat-1", limit=3, timeout_seconds=1))
        assert [m["content"] for m in history] == ["m5", "m6", "m7"]


class TestBuildChatMessages:
    def test_drops_duplicate_current_message_and_leading_assistant(self):
        history = [
            {"role": "assistant", "content": "Welcome!"},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hey"},
            {"role": "user", "content": "what's up"},
        ]
        assert build_chat_messages(history, "what's up") == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hey"},
            {"role": "user", "content": "what's up"},
        ]

    def test_empty_text_and_history(self):
        assert build_chat_messages([], "  ") == []
