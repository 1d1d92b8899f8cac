"""Inbound webhook lifecycle: acknowledge fast, reply exactly once later.

The synchronous phase validates the payload, claims the message id in the
dedup ledger and builds the acknowledgment. Everything slow (history, the
agent's processing, delivery) runs afterwards in `WebhookController.process`,
which always ends in exactly one send attempt with non-empty text.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from pydantic import ValidationError

from groupmatch.config import settings
from groupmatch.database import SessionLocal
from groupmatch.logging_config import bind_logger, get_logger
from groupmatch.schemas.webhook import ChatStartedRequest, WebhookRequest, WebhookResponse
from groupmatch.services.alert_service import alert_critical
from groupmatch.services.dedup_ledger import MessageIdentity, MessageLedger, get_message_ledger
from groupmatch.services.history_service import fetch_conversation_history
from groupmatch.services.messaging_service import MessagingClient, is_test_chat
from groupmatch.services.processors import MessageProcessor, get_processor
from groupmatch.services.replies import (
    CONTINUATION_FALLBACK_RESPONSE,
    PROCESSING_FALLBACK_RESPONSE,
    AgentReply,
    ensure_reply,
)
from groupmatch.services.result import Result

logger = get_logger("webhook_service")

CHAT_STARTED_EVENT = "chat.started"


@dataclass
class InboundMessage:
    chat_id: str
    message_id: Optional[str]
    text: str
    agent_name: str
    media_url: Optional[str] = None
    received_at: float = field(default_factory=time.time)


@dataclass
class WebhookAcceptance:
    status_code: int
    body: dict
    inbound: Optional[InboundMessage] = None


def _log_timing(log, stage: str, started: float, **extra) -> None:
    context = {"stage": stage, "elapsed_ms": round((time.monotonic() - started) * 1000, 2)}
    context.update(extra)
    log.info("Timing", context=context)


class WebhookController:
    def __init__(
        self,
        agent,
        processor: Optional[MessageProcessor] = None,
        client: Optional[MessagingClient] = None,
        ledger: Optional[MessageLedger] = None,
        session_factory: Optional[Callable] = None,
    ):
        self.agent = agent
        self.processor = processor or get_processor(agent)
        self.client = client or MessagingClient(agent_id=agent.agent_id)
        self.ledger = ledger or get_message_ledger()
        self.session_factory = session_factory or SessionLocal

    def _error(self, status_code: int, message: str) -> WebhookAcceptance:
        body = WebhookResponse(success=False, agent=self.agent.name, error=message).to_body()
        return WebhookAcceptance(status_code=status_code, body=body)

    def accept(self, payload: dict) -> WebhookAcceptance:
        """Validate, deduplicate and acknowledge a message webhook."""
        try:
            request = WebhookRequest.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Invalid webhook payload: {e.error_count()} errors", extra={"context": {"agent": self.agent.name}})
            return self._error(400, "Invalid webhook payload")

        chat_id = request.chat.id if request.chat else None
        if not chat_id:
            return self._error(400, "Missing chat.id in webhook payload")

        message = request.message
        message_id = message.id if message else None
        inbound = InboundMessage(
            chat_id=chat_id,
            message_id=message_id,
            text=(message.content if message else "") or "",
            agent_name=self.agent.name,
            media_url=message.media.url if message and message.media else None,
        )

        if not message_id:
            logger.warning(
                "Webhook without message.id, processing without dedup",
                extra={"context": {"chat_id": chat_id, "agent": self.agent.name}},
            )
        elif not self.ledger.insert_if_absent(MessageIdentity(message_id=message_id, chat_id=chat_id)):
            logger.info(
                "Duplicate message skipped",
                extra={"context": {"chat_id": chat_id, "message_id": message_id, "agent": self.agent.name}},
            )
            body = WebhookResponse(success=True, agent=self.agent.name, skipped=True, reason="duplicate_message").to_body()
            return WebhookAcceptance(status_code=200, body=body)

        body = WebhookResponse(
            success=True,
            agent=self.agent.name,
            processing=True,
            message_id=message_id,
        ).to_body()
        return WebhookAcceptance(status_code=200, body=body, inbound=inbound)

    async def process(self, inbound: InboundMessage) -> None:
        """Continuation: history, processing, delivery. Never raises."""
        log = bind_logger(
            "webhook_service",
            chat_id=inbound.chat_id,
            message_id=inbound.message_id,
            agent=self.agent.name,
        )
        try:
            started = time.monotonic()
            history = await fetch_conversation_history(
                self.client,
                inbound.chat_id,
                limit=self.agent.history_limit,
                timeout_seconds=settings.history_timeout_seconds,
                agent_name=self.agent.display_name,
            )
            _log_timing(log, "history", started, messages=len(history))

            started = time.monotonic()
            reply = await self._run_processor(inbound, history, log)
            _log_timing(log, "process", started)

            await self._deliver(inbound, reply, log)
        except Exception as exc:
            log.error("Continuation failed", context={"error": str(exc)}, exc_info=True)
            await self._send_last_resort(inbound, log)

    async def _run_processor(self, inbound: InboundMessage, history: List[dict], log) -> AgentReply:
        db = self.session_factory()
        try:
            result = await asyncio.wait_for(
                self.processor.process(db, inbound, history),
                timeout=settings.process_timeout_seconds,
            )
            if result.ok:
                db.commit()
            else:
                db.rollback()
                log.warning("Processor returned failure", context={"error": result.error, "code": result.error_code})
        except asyncio.TimeoutError:
            db.rollback()
            log.warning("Processing timed out", context={"timeout_seconds": settings.process_timeout_seconds})
            result = Result.failure("Processing timed out", "timeout")
        except Exception as exc:
            db.rollback()
            log.error("Processor crashed", context={"error": str(exc)}, exc_info=True)
            result = Result.failure(str(exc), "processor_error")
        finally:
            db.close()
        return ensure_reply(result, fallback=PROCESSING_FALLBACK_RESPONSE)

    async def _deliver(self, inbound: InboundMessage, reply: AgentReply, log) -> bool:
        if reply.sent:
            log.info("Reply already sent by processor")
            return True
        if is_test_chat(inbound.chat_id):
            log.info("Test chat, skipping send", context={"reply_preview": reply.text[:80]})
            return True

        if reply.media_url:
            sent = await self.client.send_media_message(inbound.chat_id, reply.text, reply.media_url)
        else:
            sent = await self.client.send_message(inbound.chat_id, reply.text, reply.rich_content_blocks)

        if not sent:
            log.error("Reply delivery failed")
            alert_critical(
                "Reply delivery failed",
                {"agent": self.agent.name, "chat_id": inbound.chat_id, "message_id": inbound.message_id},
            )
        return sent

    async def _send_last_resort(self, inbound: InboundMessage, log) -> None:
        if is_test_chat(inbound.chat_id):
            return
        try:
            sent = await self.client.send_message(inbound.chat_id, CONTINUATION_FALLBACK_RESPONSE)
        except Exception as exc:
            log.error("Last-resort send failed", context={"error": str(exc)})
            return
        if not sent:
            log.error("Last-resort send failed")

    async def handle_chat_started(self, payload: dict) -> WebhookAcceptance:
        """Send the agent's welcome message for a newly opened chat."""
        try:
            event = ChatStartedRequest.model_validate(payload)
        except ValidationError:
            return self._error(400, "Invalid chat.started payload")

        chat_id = event.resolved_chat_id()
        if not chat_id:
            return self._error(400, "Missing chatId in chat.started payload")

        user = event.resolved_user()
        user_name = user.user_name if user else None
        is_anonymous = user.is_anonymous if user else True
        welcome = self.agent.render_welcome(user_name, is_anonymous)

        if is_test_chat(chat_id):
            logger.info("Test chat, skipping welcome", extra={"context": {"chat_id": chat_id}})
            sent = False
        else:
            sent = await self.client.send_message(chat_id, welcome)
            if not sent:
                logger.error("Welcome message not sent", extra={"context": {"chat_id": chat_id, "agent": self.agent.name}})

        body = WebhookResponse(
            success=True,
            agent=self.agent.name,
            event=CHAT_STARTED_EVENT,
            welcome_message_sent=sent,
            user_name=user_name,
        ).to_body()
        return WebhookAcceptance(status_code=200, body=body)
