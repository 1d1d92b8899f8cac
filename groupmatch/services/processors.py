from abc import ABC, abstractmethod
from typing import List

from sqlalchemy.orm import Session

from groupmatch.logging_config import get_logger
from groupmatch.services import llm_service
from groupmatch.services.alert_service import alert_error
from groupmatch.services.document_service import load_context_document
from groupmatch.services.history_service import build_chat_messages
from groupmatch.services.interview_service import handle_interview_message
from groupmatch.services.llm import LLMError
from groupmatch.services.replies import AgentReply
from groupmatch.services.result import Result

logger = get_logger("processors")


class MessageProcessor(ABC):
    """Turns one inbound message plus recent history into a reply."""

    def __init__(self, agent):
        self.agent = agent

    @abstractmethod
    async def process(self, db: Session, inbound, history: List[dict]) -> Result[AgentReply]:
        pass


class InterviewProcessor(MessageProcessor):
    async def process(self, db: Session, inbound, history: List[dict]) -> Result[AgentReply]:
        result = await handle_interview_message(db, inbound.chat_id, inbound.text, history, agent=self.agent)
        return result.map(lambda text: AgentReply(text=text))


class ChatProcessor(MessageProcessor):
    """Plain conversational agent grounded on its reference document."""

    async def process(self, db: Session, inbound, history: List[dict]) -> Result[AgentReply]:
        messages = build_chat_messages(history, inbound.text, max_messages=self.agent.history_limit)
        if not messages:
            return Result.failure("Nothing to reply to", "empty_message")
        try:
            reply = await llm_service.chat(
                messages,
                system_prompt=self.agent.system_prompt,
                model=self.agent.model,
                temperature=self.agent.temperature,
                max_tokens=self.agent.max_tokens,
                context_document=load_context_document(self.agent),
            )
        except LLMError as e:
            logger.error(f"Chat reply failed: {e}", extra={"context": {"chat_id": inbound.chat_id}})
            alert_error("LLM reply failed", {"agent": self.agent.name, "chat_id": inbound.chat_id, "error": str(e)})
            return Result.failure(str(e), "llm_error")
        return Result.success(AgentReply(text=reply))


PROCESSORS = {
    "matchmaker": InterviewProcessor,
    "assistant": ChatProcessor,
}


def get_processor(agent) -> MessageProcessor:
    return PROCESSORS.get(agent.name, ChatProcessor)(agent)
