from enum import Enum


class InterviewPhase(str, Enum):
    NOT_STARTED = "not_started"
    ASKING = "asking"
    CLARIFYING = "clarifying"
    COMPLETE = "complete"


VALID_TRANSITIONS = {
    InterviewPhase.NOT_STARTED: [InterviewPhase.ASKING],
    InterviewPhase.ASKING: [InterviewPhase.ASKING, InterviewPhase.CLARIFYING, InterviewPhase.COMPLETE],
    InterviewPhase.CLARIFYING: [
        InterviewPhase.ASKING,
        InterviewPhase.CLARIFYING,
        InterviewPhase.COMPLETE,
    ],
    InterviewPhase.COMPLETE: [InterviewPhase.COMPLETE],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_phase: InterviewPhase, to_phase: InterviewPhase):
        self.from_phase = from_phase
        self.to_phase = to_phase
        super().__init__(f"Invalid transition: {from_phase.value} -> {to_phase.value}")


def can_transition(from_phase: InterviewPhase, to_phase: InterviewPhase) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_phase, [])
    return to_phase in allowed


def transition(from_phase: InterviewPhase, to_phase: InterviewPhase) -> InterviewPhase:
    """Perform phase transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_phase, to_phase):
        raise InvalidTransitionError(from_phase, to_phase)
    return to_phase


def phase_of(state, has_profile: bool) -> InterviewPhase:
    """Derive the interview phase from the stored state row and profile presence."""
    if has_profile and state is None:
        return InterviewPhase.COMPLETE
    if state is None:
        return InterviewPhase.NOT_STARTED
    if state.waiting_for_clarification:
        return InterviewPhase.CLARIFYING
    return InterviewPhase.ASKING


def start_interview(current: InterviewPhase) -> InterviewPhase:
    """First message of a chat opens the interview."""
    return transition(current, InterviewPhase.ASKING)


def request_clarification(current: InterviewPhase) -> InterviewPhase:
    """Answer rejected, wait for a clarified answer."""
    return transition(current, InterviewPhase.CLARIFYING)


def advance(current: InterviewPhase) -> InterviewPhase:
    """Answer accepted, ask the next question."""
    return transition(current, InterviewPhase.ASKING)


def complete(current: InterviewPhase) -> InterviewPhase:
    """Last answer accepted and profile persisted."""
    return transition(current, InterviewPhase.COMPLETE)
