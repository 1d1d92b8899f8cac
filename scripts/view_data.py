#!/usr/bin/env python3
"""
Print stored profiles, in-progress interviews and matches.
Usage: python scripts/view_data.py [profiles|interviews|matches]
"""

import sys

from groupmatch.database import SessionLocal, init_db
from groupmatch.services.interview_questions import QUESTIONS
from groupmatch.services.interview_state_service import list_states
from groupmatch.services.match_service import list_matches
from groupmatch.services.profile_service import list_profiles


def show_profiles(db):
    profiles = list_profiles(db)
    print(f"\n=== Group profiles ({len(profiles)}) ===")
    for profile in profiles:
        print(f"\n{profile.group_name}  (chat {profile.chat_id}, completed {profile.completed_at})")
        for question in QUESTIONS:
            print(f"  {question.label}: {profile.answers.get(question.key, '-')}")
        if profile.extra_data:
            print(f"  Extra: {profile.extra_data}")


def show_interviews(db):
    states = list_states(db)
    print(f"\n=== Active interviews ({len(states)}) ===")
    for state in states:
        flag = " (clarifying)" if state.waiting_for_clarification else ""
        print(f"  {state.chat_id}: question {state.question_number}/10{flag}, group={state.group_name or '-'}")


def show_matches(db):
    matches = list_matches(db)
    print(f"\n=== Matches ({len(matches)}) ===")
    for match in matches:
        star = " *best*" if match.is_best_match else ""
        print(
            f"  {match.group1_name} + {match.group2_name}: {match.percentage}%{star} "
            f"(quant {match.quantitative}, qual {match.qualitative}, size {match.size_match})"
        )


SECTIONS = {"profiles": show_profiles, "interviews": show_interviews, "matches": show_matches}


if __name__ == "__main__":
    requested = sys.argv[1:] or list(SECTIONS)
    unknown = [name for name in requested if name not in SECTIONS]
    if unknown:
        print(f"Unknown section(s): {', '.join(unknown)}. Choose from: {', '.join(SECTIONS)}")
        sys.exit(1)

    init_db()
    session = SessionLocal()
    try:
        for name in requested:
            SECTIONS[name](session)
    finally:
        session.close()
