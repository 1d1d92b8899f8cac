from groupmatch.models.group_profile import GroupProfile
from groupmatch.models.interview_state import InterviewState
from groupmatch.models.match import MatchRecord

__all__ = [
    "GroupProfile",
    "InterviewState",
    "MatchRecord",
]
