"""Judge whether a free-text answer actually answers the interview question.

Deterministic pre-checks run first and can settle an answer without a model
call. Anything left over goes to the LLM. A model that rejects an answer the
deterministic rules would accept is overruled, and a model that times out,
errors, or returns garbage never blocks a non-empty answer.
"""

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from groupmatch.config import settings
from groupmatch.logging_config import get_logger
from groupmatch.services import llm_service
from groupmatch.services.interview_questions import InterviewQuestion, get_question

logger = get_logger("answer_validator")

MIN_GROUP_SIZE = 1
MAX_GROUP_SIZE = 100
LENIENT_QUESTION_KEYS = {"roman_empire", "side_quest"}
LENIENT_MAX_CHARS = 500

NUMBER_WORDS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "thirteen": 13,
    "fourteen": 14,
    "fifteen": 15,
    "sixteen": 16,
    "seventeen": 17,
    "eighteen": 18,
    "nineteen": 19,
    "twenty": 20,
}

TRIVIAL_GROUP_NAMES = {
    "yes",
    "yeah",
    "yep",
    "yup",
    "no",
    "nope",
    "ok",
    "okay",
    "k",
    "sure",
    "ready",
    "we're ready",
    "were ready",
    "im ready",
    "i'm ready",
    "hi",
    "hello",
    "hey",
    "lol",
    "idk",
    "test",
    "name",
    "group",
    "our group",
    "start",
    "go",
}

VALIDATOR_SYSTEM_PROMPT = (
    "You check answers in a playful group-matching interview. Be generous: jokes, "
    "slang and short answers are fine as long as they respond to the question. "
    "Reject only answers that ignore the question, are gibberish, or answer a different question. "
    'Reply with JSON only: {"valid": true|false, "clarification": "<one short friendly follow-up question, empty when valid>"}'
)

QUESTION_RULES = {
    "group_name": "Any creative name works. Reject filler like 'yes', 'ok', greetings or sentences that are not a name.",
    "group_size": "Must state how many people are in the group (a number or number word).",
    "ideal_day": "Any description of activities or vibes for a day.",
    "fiction_group": (
        "Must name a fictional group, duo or team. {size_rule}"
    ),
    "music_taste": "Any genre, artist, playlist vibe or description of music.",
    "disliked_celebrity": "Should name a celebrity or public figure. Jokes about the choice are fine.",
    "origin_story": "Any short story of how the group formed.",
    "emoji": "An emoji character or the name/description of an emoji.",
    "roman_empire": "Anything the group thinks about a lot.",
    "side_quest": "Any adventure or odd experience.",
}


@dataclass
class ValidationOutcome:
    is_valid: bool
    clarification_question: Optional[str] = None
    source: str = "llm"


def extract_group_size(text: str) -> Optional[int]:
    """First plausible head count in the text (digits or number words)."""
    normalized = (text or "").lower()
    for match in re.finditer(r"(?<!\d)(\d{1,3})(?!\d)", normalized):
        value = int(match.group(1))
        if MIN_GROUP_SIZE <= value <= MAX_GROUP_SIZE:
            return value
    for word in re.findall(r"[a-z]+", normalized):
        if word in NUMBER_WORDS:
            return NUMBER_WORDS[word]
    return None


def is_trivial_group_name(text: str) -> bool:
    normalized = re.sub(r"[^\w\s']", "", (text or "").strip().lower()).strip()
    return not normalized or normalized in TRIVIAL_GROUP_NAMES


def _default_clarification(question: InterviewQuestion) -> str:
    if question.key == "group_name":
        return "Ha, I need an actual name for your crew! What should we call your group?"
    if question.key == "group_size":
        return "Just need a number here! How many people are in your group?"
    return f"Could you give me a bit more on that? {question.text}"


def _precheck(question: InterviewQuestion, answer: str) -> Optional[ValidationOutcome]:
    text = (answer or "").strip()
    if not text:
        return ValidationOutcome(False, _default_clarification(question), source="precheck")

    if question.key == "group_size" and extract_group_size(text) is not None:
        return ValidationOutcome(True, source="precheck")

    if question.key in LENIENT_QUESTION_KEYS and len(text) < LENIENT_MAX_CHARS:
        return ValidationOutcome(True, source="precheck")

    if question.key == "group_name" and is_trivial_group_name(text):
        return ValidationOutcome(False, _default_clarification(question), source="precheck")

    return None


def deterministic_accepts(question: InterviewQuestion, answer: str) -> bool:
    outcome = _precheck(question, answer)
    return outcome is not None and outcome.is_valid


def _size_rule(prior_answers: Mapping[str, str]) -> str:
    size = extract_group_size((prior_answers or {}).get("group_size", ""))
    if size == 1:
        return "The group is one person, so a single character is acceptable."
    if size is not None:
        return f"The group has {size} people, so a lone character is not enough; it must be a duo, team or group."
    return "A duo, team or group is expected."


def build_validation_prompt(question: InterviewQuestion, answer: str, prior_answers: Mapping[str, str]) -> str:
    rule = QUESTION_RULES.get(question.key, "").format(size_rule=_size_rule(prior_answers))
    return (
        f"Question {question.number}: {question.text}\n"
        f"Acceptance rule: {rule}\n"
        f"Answer: {answer.strip()}\n\n"
        "Does the answer respond to the question?"
    )


def parse_validator_output(raw: str) -> tuple[bool, Optional[str]]:
    """Parse model output. Raises ValueError when it cannot be understood."""
    text = (raw or "").strip()
    match = re.search(r"\{.*\}", text, flags=re.DOTALL)
    if match:
        data = json.loads(match.group(0))
        if not isinstance(data.get("valid"), bool):
            raise ValueError("validator JSON without boolean 'valid'")
        clarification = data.get("clarification")
        return data["valid"], clarification.strip() if isinstance(clarification, str) and clarification.strip() else None

    first_word = re.match(r"\W*(\w+)", text)
    if first_word and first_word.group(1).upper() in {"YES", "VALID"}:
        return True, None
    if first_word and first_word.group(1).upper() in {"NO", "INVALID"}:
        remainder = re.sub(r"^\W*\w+\W*", "", text, count=1).strip()
        return False, remainder or None
    raise ValueError(f"unparseable validator output: {text[:80]}")


async def validate_answer(
    question: Optional[InterviewQuestion],
    answer: str,
    question_number: int,
    prior_answers: Optional[Mapping[str, str]] = None,
) -> ValidationOutcome:
    question = question or get_question(question_number)
    if question is None:
        return ValidationOutcome(bool((answer or "").strip()), source="fault")

    outcome = _precheck(question, answer)
    if outcome is not None:
        return outcome

    try:
        raw = await asyncio.wait_for(
            llm_service.generate_text(
                build_validation_prompt(question, answer, prior_answers or {}),
                system_prompt=VALIDATOR_SYSTEM_PROMPT,
                temperature=0.0,
                max_tokens=150,
                timeout_seconds=settings.validator_timeout_seconds,
            ),
            timeout=settings.validator_timeout_seconds,
        )
        is_valid, clarification = parse_validator_output(raw)
    except Exception as exc:
        logger.warning(
            "Validator fault, accepting non-empty answer",
            extra={"context": {"question_number": question_number, "error": repr(exc)}},
        )
        return ValidationOutcome(True, source="fault")

    if is_valid:
        return ValidationOutcome(True, source="llm")

    if deterministic_accepts(question, answer):
        logger.info(
            "Validator rejection overridden by deterministic rule",
            extra={"context": {"question_number": question_number}},
        )
        return ValidationOutcome(True, source="safety_net")

    return ValidationOutcome(False, clarification or _default_clarification(question), source="llm")
