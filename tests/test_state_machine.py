from types import SimpleNamespace

import pytest

from groupmatch.services.state_machine import (
    InterviewPhase,
    InvalidTransitionError,
    advance,
    can_transition,
    complete,
    phase_of,
    request_clarification,
    start_interview,
    transition,
)


class TestValidTransitions:
    def test_not_started_to_asking(self):
        assert start_interview(InterviewPhase.NOT_STARTED) == InterviewPhase.ASKING

    def test_asking_to_clarifying(self):
        assert request_clarification(InterviewPhase.ASKING) == InterviewPhase.CLARIFYING

    def test_clarifying_stays_clarifying(self):
        assert request_clarification(InterviewPhase.CLARIFYING) == InterviewPhase.CLARIFYING

    def test_clarifying_to_asking(self):
        assert advance(InterviewPhase.CLARIFYING) == InterviewPhase.ASKING

    def test_asking_to_complete(self):
        assert complete(InterviewPhase.ASKING) == InterviewPhase.COMPLETE

    def test_complete_is_terminal(self):
        assert transition(InterviewPhase.COMPLETE, InterviewPhase.COMPLETE) == InterviewPhase.COMPLETE


class TestInvalidTransitions:
    def test_not_started_cannot_complete(self):
        with pytest.raises(InvalidTransitionError):
            complete(InterviewPhase.NOT_STARTED)

    def test_complete_cannot_restart(self):
        with pytest.raises(InvalidTransitionError):
            advance(InterviewPhase.COMPLETE)

    def test_not_started_cannot_clarify(self):
        assert can_transition(InterviewPhase.NOT_STARTED, InterviewPhase.CLARIFYING) is False

    def test_error_message(self):
        with pytest.raises(InvalidTransitionError, match="complete -> asking"):
            transition(InterviewPhase.COMPLETE, InterviewPhase.ASKING)


class TestPhaseOf:
    def test_no_state_no_profile(self):
        assert phase_of(None, has_profile=False) == InterviewPhase.NOT_STARTED

    def test_no_state_with_profile(self):
        assert phase_of(None, has_profile=True) == InterviewPhase.COMPLETE

    def test_waiting_for_clarification(self):
        state = SimpleNamespace(waiting_for_clarification=True)
        assert phase_of(state, has_profile=False) == InterviewPhase.CLARIFYING

    def test_asking(self):
        state = SimpleNamespace(waiting_for_clarification=False)
        assert phase_of(state, has_profile=False) == InterviewPhase.ASKING
