from typing import List, Optional

from sqlalchemy.orm import Session

from groupmatch.logging_config import get_logger
from groupmatch.models import InterviewState
from groupmatch.models.interview_state import CURRENT_SCHEMA_VERSION
from groupmatch.services.interview_questions import QUESTIONS

logger = get_logger("interview_state_service")

LEGACY_ANSWER_KEYS = {f"question{q.number}": q.key for q in QUESTIONS}


def migrate_state(state: InterviewState) -> InterviewState:
    """Upgrade rows written by older versions in place."""
    version = state.schema_version or 1
    if version >= CURRENT_SCHEMA_VERSION:
        return state

    if version < 2:
        answers = {}
        for key, value in (state.answers or {}).items():
            answers[LEGACY_ANSWER_KEYS.get(key, key)] = value
        state.answers = answers
        if not state.group_name and answers.get("group_name"):
            state.group_name = answers["group_name"]

    logger.info(
        "Migrated interview state",
        extra={"context": {"chat_id": state.chat_id, "from_version": version, "to_version": CURRENT_SCHEMA_VERSION}},
    )
    state.schema_version = CURRENT_SCHEMA_VERSION
    return state


def get_state(db: Session, chat_id: str) -> Optional[InterviewState]:
    state = db.query(InterviewState).filter(InterviewState.chat_id == chat_id).first()
    if state is None:
        return None
    return migrate_state(state)


def create_state(db: Session, chat_id: str) -> InterviewState:
    state = InterviewState(
        chat_id=chat_id,
        question_number=1,
        answers={},
        waiting_for_clarification=False,
        clarification_question=None,
        clarification_count=0,
        schema_version=CURRENT_SCHEMA_VERSION,
    )
    db.add(state)
    db.flush()
    return state


def save_state(db: Session, state: InterviewState) -> InterviewState:
    db.add(state)
    db.flush()
    return state


def set_answer(state: InterviewState, key: str, value: str) -> None:
    """Store an answer; assigns a new dict so the JSON column is marked dirty."""
    state.answers = {**(state.answers or {}), key: value}


def reset_state(state: InterviewState) -> None:
    state.question_number = 1
    state.answers = {}
    state.group_name = None
    state.waiting_for_clarification = False
    state.clarification_question = None
    state.clarification_count = 0


def clear_state(db: Session, chat_id: str) -> bool:
    deleted = db.query(InterviewState).filter(InterviewState.chat_id == chat_id).delete()
    db.flush()
    return bool(deleted)


def count_active(db: Session) -> int:
    return db.query(InterviewState).count()


def list_states(db: Session) -> List[InterviewState]:
    return db.query(InterviewState).order_by(InterviewState.started_at, InterviewState.chat_id).all()
