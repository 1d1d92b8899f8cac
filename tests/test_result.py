from groupmatch.services.replies import PROCESSING_FALLBACK_RESPONSE, AgentReply, ensure_reply
from groupmatch.services.result import Result


class TestResult:
    def test_success_creates_ok_result(self):
        result = Result.success("value")
        assert result.ok is True
        assert result.value == "value"
        assert result.error is None

    def test_failure_default_code(self):
        result = Result.failure("Error message")
        assert result.ok is False
        assert result.error_code == "unknown"

    def test_unwrap_or(self):
        assert Result.success("actual").unwrap_or("default") == "actual"
        assert Result.failure("Error", "code").unwrap_or("default") == "default"

    def test_map_transforms_success_only(self):
        assert Result.success(2).map(lambda v: v * 10).value == 20
        failure = Result.failure("nope", "duplicate_group_name")
        mapped = failure.map(lambda v: v * 10)
        assert mapped.ok is False
        assert mapped.error_code == "duplicate_group_name"


class TestEnsureReply:
    def test_failure_uses_fallback(self):
        reply = ensure_reply(Result.failure("timeout", "timeout"), fallback="Question 3 of 10")
        assert reply.text == "Question 3 of 10"

    def test_blank_success_uses_fallback(self):
        reply = ensure_reply(Result.success("   "), fallback="Try again")
        assert reply.text == "Try again"

    def test_blank_fallback_uses_processing_fallback(self):
        reply = ensure_reply(None, fallback="")
        assert reply.text == PROCESSING_FALLBACK_RESPONSE

    def test_agent_reply_passes_through(self):
        original = AgentReply(text="Hello!", rich_content_blocks=[{"type": "card"}])
        assert ensure_reply(Result.success(original)) is original

    def test_sent_reply_kept_even_without_text(self):
        original = AgentReply(text="", sent=True)
        assert ensure_reply(Result.success(original)).sent is True

    def test_blank_agent_reply_keeps_attachments(self):
        reply = ensure_reply(Result.success(AgentReply(text="", media_url="https://cdn/x.png")))
        assert reply.text == PROCESSING_FALLBACK_RESPONSE
        assert reply.media_url == "https://cdn/x.png"
