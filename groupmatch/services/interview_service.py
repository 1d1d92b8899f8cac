"""Ten-question group interview driven one inbound message at a time."""

import asyncio
import re
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from groupmatch.config import settings
from groupmatch.logging_config import get_logger
from groupmatch.models import InterviewState
from groupmatch.services import llm_service
from groupmatch.services.answer_validator import validate_answer
from groupmatch.services.history_service import build_chat_messages
from groupmatch.services.interview_questions import (
    QUESTIONS,
    InterviewQuestion,
    first_missing_question,
    format_question_prompt,
    get_question,
    is_valid_question_number,
    lead_in_for,
)
from groupmatch.services.interview_state_service import (
    clear_state,
    create_state,
    get_state,
    reset_state,
    save_state,
    set_answer,
)
from groupmatch.services.profile_service import create_profile, get_profile_by_chat_id, group_name_exists
from groupmatch.services.replies import GENERIC_PROMPT_RESPONSE, ensure_reply
from groupmatch.services.result import Result
from groupmatch.services.state_machine import (
    InterviewPhase,
    advance,
    complete,
    phase_of,
    request_clarification,
    start_interview,
    transition,
)

logger = get_logger("interview_service")

MAX_CLARIFICATIONS_PER_QUESTION = 1

NOT_READY_PATTERN = re.compile(
    r"\b(not ready|not yet|hold on|one sec|wait a (sec|second|minute|bit)|still waiting|give us a (sec|second|minute)|not everyone|still missing)\b",
    re.IGNORECASE,
)

START_LEAD_IN = "Yay, let's do this! 🎉"
RESTART_LEAD_IN = "Oops, I lost track of where we were. Let's start from the top!"
NOT_READY_RESPONSE = "No rush! Let me know once the whole group is here and ready to start 😊"
DUPLICATE_NAME_CLARIFICATION = (
    'Ooh, "{name}" is already taken by another group! What else could we call your group?'
)
COMPLETION_RESPONSE = (
    "That's all 10 questions! 🎉 The profile for {group_name} is saved. "
    "Sit tight, I'll let you know when we've found a group you'd vibe with!"
)
PROFILE_COMPLETE_RESPONSE = "Your group profile is all set! 🎉 Sit tight while we find your match."

COMPLETE_CONTEXT = """

The interview with this group ({group_name}) is already finished and their profile is saved.
- Chat naturally and briefly about anything they bring up
- Do NOT ask any interview questions again and do NOT restart the interview
- Do NOT greet them or send a welcome message
- If they ask about matches, say matches are announced once everyone has finished"""

GREETING_PATTERN = re.compile(r"^\s*(welcome|hey[,!]? i'm|hi[,!]? i'm)", re.IGNORECASE)


class _ChatLock:
    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


_chat_locks: Dict[str, _ChatLock] = {}


@asynccontextmanager
async def serialized_chat(chat_id: str):
    """Process one message per chat at a time; entries are dropped when idle."""
    entry = _chat_locks.get(chat_id)
    if entry is None:
        entry = _ChatLock()
        _chat_locks[chat_id] = entry
    entry.users += 1
    try:
        async with entry.lock:
            yield
    finally:
        entry.users -= 1
        if entry.users == 0:
            _chat_locks.pop(chat_id, None)


def is_not_ready(text: str) -> bool:
    return bool(NOT_READY_PATTERN.search(text or ""))


def _strip_display_name(reply: str, agent) -> str:
    name = getattr(agent, "display_name", None)
    if not name:
        return reply.strip()
    return re.sub(rf"^\s*{re.escape(name)}\s*:\s*", "", reply, flags=re.IGNORECASE).strip()


def _echoes_interview(reply: str) -> bool:
    lowered = reply.lower()
    if GREETING_PATTERN.search(reply):
        return True
    return any(q.text.lower().rstrip("?") in lowered for q in QUESTIONS)


async def _respond_after_completion(profile, text: str, history: List[dict], agent) -> str:
    system_prompt = (getattr(agent, "system_prompt", "") or "") + COMPLETE_CONTEXT.format(
        group_name=profile.group_name
    )
    messages = build_chat_messages(history, text, max_messages=settings.history_limit)
    if not messages:
        return PROFILE_COMPLETE_RESPONSE
    try:
        reply = await asyncio.wait_for(
            llm_service.chat(
                messages,
                system_prompt=system_prompt,
                model=getattr(agent, "model", None),
                temperature=getattr(agent, "temperature", 0.7),
                max_tokens=300,
                timeout_seconds=settings.llm_timeout_seconds,
            ),
            timeout=settings.llm_timeout_seconds,
        )
    except Exception as exc:
        logger.warning(
            "Post-interview reply failed, using canned response",
            extra={"context": {"chat_id": profile.chat_id, "error": repr(exc)}},
        )
        return PROFILE_COMPLETE_RESPONSE

    reply = _strip_display_name(reply, agent)
    if not reply or _echoes_interview(reply):
        return PROFILE_COMPLETE_RESPONSE
    return reply


def _apply_phase(db: Session, state: InterviewState, phase: InterviewPhase) -> None:
    """Persist the phase a transition produced. COMPLETE chats keep no state row."""
    if phase == InterviewPhase.COMPLETE:
        clear_state(db, state.chat_id)
        return
    state.waiting_for_clarification = phase == InterviewPhase.CLARIFYING
    if phase == InterviewPhase.ASKING:
        state.clarification_question = None
        state.clarification_count = 0
    save_state(db, state)


def _start(db: Session, chat_id: str, text: str, phase: InterviewPhase) -> str:
    if is_not_ready(text):
        logger.info("Group not ready yet", extra={"context": {"chat_id": chat_id}})
        return NOT_READY_RESPONSE
    state = create_state(db, chat_id)
    _apply_phase(db, state, start_interview(phase))
    logger.info("Interview started", extra={"context": {"chat_id": chat_id}})
    return format_question_prompt(get_question(1), START_LEAD_IN)


def _restart(db: Session, state: InterviewState, phase: InterviewPhase) -> str:
    logger.warning(
        "Corrupted interview state, restarting",
        extra={"context": {"chat_id": state.chat_id, "question_number": state.question_number}},
    )
    reset_state(state)
    _apply_phase(db, state, transition(phase, InterviewPhase.ASKING))
    return format_question_prompt(get_question(1), RESTART_LEAD_IN)


def _request_clarification(db: Session, state: InterviewState, phase: InterviewPhase, clarification: str) -> str:
    state.clarification_question = clarification
    state.clarification_count = (state.clarification_count or 0) + 1
    _apply_phase(db, state, request_clarification(phase))
    logger.info(
        "Clarification requested",
        extra={
            "context": {
                "chat_id": state.chat_id,
                "question_number": state.question_number,
                "clarification_count": state.clarification_count,
            }
        },
    )
    return clarification


def _redirect_to_name(db: Session, state: InterviewState, phase: InterviewPhase, taken_name: str) -> str:
    """Send the chat back to question 1 after its name turned out to be taken.

    Other answers are kept, so a fresh name completes the interview directly
    when nothing else is missing. This clarification does not count toward the
    loop-breaker: a taken name is never accepted.
    """
    answers = dict(state.answers or {})
    answers.pop("group_name", None)
    state.answers = answers
    state.group_name = None
    state.question_number = 1
    state.clarification_question = DUPLICATE_NAME_CLARIFICATION.format(name=taken_name)
    state.clarification_count = 0
    _apply_phase(db, state, request_clarification(phase))
    logger.info("Group name taken", extra={"context": {"chat_id": state.chat_id, "group_name": taken_name}})
    return state.clarification_question


def _complete(db: Session, state: InterviewState, phase: InterviewPhase) -> str:
    chat_id = state.chat_id
    group_name = state.answers.get("group_name", "")

    if group_name_exists(db, group_name):
        return _redirect_to_name(db, state, phase, group_name)

    result = create_profile(db, dict(state.answers), chat_id=chat_id)
    if not result.ok:
        if result.error_code == "duplicate_group_name":
            return _redirect_to_name(db, state, phase, group_name)
        raise ValueError(result.error)

    _apply_phase(db, state, complete(phase))
    logger.info("Interview complete", extra={"context": {"chat_id": chat_id, "group_name": group_name}})
    return COMPLETION_RESPONSE.format(group_name=result.value.group_name)


def _accept(db: Session, state: InterviewState, phase: InterviewPhase, question: InterviewQuestion, answer: str) -> str:
    if question.key == "group_name":
        if group_name_exists(db, answer):
            return _redirect_to_name(db, state, phase, answer)
        state.group_name = answer

    set_answer(state, question.key, answer)

    next_question = first_missing_question(state.answers)
    if next_question is None:
        return _complete(db, state, phase)

    if next_question.number <= question.number:
        logger.warning(
            "Re-asking missing answer",
            extra={"context": {"chat_id": state.chat_id, "question_number": next_question.number}},
        )
    state.question_number = next_question.number
    _apply_phase(db, state, advance(phase))
    return format_question_prompt(next_question, lead_in_for(next_question.number))


async def _process(db: Session, chat_id: str, text: str, history: List[dict], agent) -> str:
    state = get_state(db, chat_id)
    profile = get_profile_by_chat_id(db, chat_id) if state is None else None
    phase = phase_of(state, has_profile=profile is not None)

    if phase == InterviewPhase.COMPLETE:
        return await _respond_after_completion(profile, text, history, agent)
    if phase == InterviewPhase.NOT_STARTED:
        return _start(db, chat_id, text, phase)
    if not is_valid_question_number(state.question_number):
        return _restart(db, state, phase)

    question = get_question(state.question_number)
    answer = (text or "").strip()

    outcome = await validate_answer(question, answer, question.number, state.answers)
    if not outcome.is_valid:
        loop_breaker = (
            phase == InterviewPhase.CLARIFYING
            and answer
            and (state.clarification_count or 0) >= MAX_CLARIFICATIONS_PER_QUESTION
        )
        if not loop_breaker:
            return _request_clarification(db, state, phase, outcome.clarification_question)
        logger.info(
            "Accepting answer after repeated clarification",
            extra={"context": {"chat_id": chat_id, "question_number": question.number}},
        )

    return _accept(db, state, phase, question, answer)


def _safe_current_prompt(db: Session, chat_id: str) -> str:
    try:
        state = get_state(db, chat_id)
    except Exception:
        return GENERIC_PROMPT_RESPONSE
    if state is None or not is_valid_question_number(state.question_number):
        return GENERIC_PROMPT_RESPONSE
    if state.waiting_for_clarification and state.clarification_question:
        return state.clarification_question
    return format_question_prompt(get_question(state.question_number))


async def handle_interview_message(
    db: Session,
    chat_id: str,
    text: str,
    history: Optional[List[dict]] = None,
    agent=None,
) -> Result[str]:
    """Advance the chat's interview by one message. Always yields a non-empty reply.

    The turn is committed before the chat lock is released, so the next
    message for the same chat reads this one's state.
    """
    async with serialized_chat(chat_id):
        try:
            reply = await _process(db, chat_id, text, history or [], agent)
            db.commit()
            result = Result.success(reply)
        except Exception as e:
            logger.error(
                "Interview processing failed",
                extra={"context": {"chat_id": chat_id, "error": str(e)}},
                exc_info=True,
            )
            db.rollback()
            result = Result.failure(str(e), "interview_error")
        fallback = _safe_current_prompt(db, chat_id) if not result.ok else GENERIC_PROMPT_RESPONSE
        return Result.success(ensure_reply(result, fallback=fallback).text)
