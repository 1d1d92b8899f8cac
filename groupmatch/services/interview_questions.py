from dataclasses import dataclass
from typing import Mapping, Optional

TOTAL_QUESTIONS = 10


@dataclass(frozen=True)
class InterviewQuestion:
    number: int
    key: str
    text: str
    label: str


QUESTIONS = (
    InterviewQuestion(1, "group_name", "What's your group name?", "Group name"),
    InterviewQuestion(2, "group_size", "How many people are in your group?", "Group size"),
    InterviewQuestion(
        3, "ideal_day", "On an ideal day, what are you/your group doing?", "Ideal day"
    ),
    InterviewQuestion(
        4,
        "fiction_group",
        "If your group were a group in fiction, who would you/your group be?",
        "Fictional group",
    ),
    InterviewQuestion(
        5,
        "music_taste",
        "If you had to say what you/your group's music taste is as a whole, what would it be?",
        "Music taste",
    ),
    InterviewQuestion(
        6,
        "disliked_celebrity",
        "Whose one celebrity that you/your group dislike as a whole?",
        "Disliked celebrity",
    ),
    InterviewQuestion(
        7, "origin_story", "What's you/your group's origin story in one sentence?", "Origin story"
    ),
    InterviewQuestion(8, "emoji", "If you/your group were an emoji, what would it be?", "Emoji"),
    InterviewQuestion(
        9,
        "roman_empire",
        "What's you/your group's Roman Empire (the random thing you collectively think about way too much)?",
        "Roman Empire",
    ),
    InterviewQuestion(
        10, "side_quest", "What's the crazy side quest you/your group has gone on?", "Side quest"
    ),
)

QUESTION_KEYS = tuple(q.key for q in QUESTIONS)
_BY_NUMBER = {q.number: q for q in QUESTIONS}

LEAD_INS = (
    "Love it!",
    "Got it!",
    "Nice!",
    "Ooh, noted.",
    "Perfect.",
    "Ha, amazing.",
    "Great answer!",
    "Okay, I see you.",
    "Noted!",
)


def get_question(number: int) -> Optional[InterviewQuestion]:
    return _BY_NUMBER.get(number)


def is_valid_question_number(number) -> bool:
    return isinstance(number, int) and 1 <= number <= TOTAL_QUESTIONS


def first_missing_question(answers: Mapping[str, str]) -> Optional[InterviewQuestion]:
    """First question without a non-blank answer, or None when all ten are present."""
    for question in QUESTIONS:
        value = (answers or {}).get(question.key)
        if not isinstance(value, str) or not value.strip():
            return question
    return None


def format_question_prompt(question: InterviewQuestion, lead_in: Optional[str] = None) -> str:
    prompt = f"Question {question.number} of {TOTAL_QUESTIONS}: {question.text}"
    return f"{lead_in} {prompt}" if lead_in else prompt


def lead_in_for(question_number: int) -> str:
    return LEAD_INS[(question_number - 2) % len(LEAD_INS)]
