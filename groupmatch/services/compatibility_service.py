"""Pairwise compatibility scoring between completed group profiles.

The score blends a deterministic part (size, music, ideal day, emoji) with an
LLM judgment of the full profiles: ``0.4 * quantitative + 0.6 * qualitative``.
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from groupmatch.config import settings
from groupmatch.logging_config import get_logger
from groupmatch.models.group_profile import normalize_group_name
from groupmatch.models.match import make_pair_key
from groupmatch.services import llm_service
from groupmatch.services.profile_service import count_profiles, get_profile_by_name, list_profiles

logger = get_logger("compatibility_service")

QUANTITATIVE_WEIGHT = 0.4
QUALITATIVE_WEIGHT = 0.6
NEUTRAL_SCORE = 0.5

SIZE_WEIGHT = 0.4
MUSIC_WEIGHT = 0.25
ACTIVITY_WEIGHT = 0.25
EMOJI_WEIGHT = 0.1

MUSIC_GENRES = {
    "rock": ["rock", "indie rock", "alternative", "punk"],
    "pop": ["pop", "mainstream", "top 40"],
    "hiphop": ["rap", "hip hop", "hiphop", "trap"],
    "electronic": ["house", "edm", "electronic", "techno", "dubstep"],
    "indie": ["indie", "alternative", "indie rock"],
}

ACTIVITY_CATEGORIES = {
    "outdoor": ["beach", "hiking", "mountain", "park", "outdoor", "camping", "nature"],
    "food": ["eating", "restaurant", "food", "cooking", "dining"],
    "social": ["friends", "hanging", "party", "social", "together"],
    "creative": ["art", "music", "creative", "projects", "making"],
    "chill": ["chill", "relax", "netflix", "watching", "lounging"],
    "adventure": ["exploring", "travel", "adventure", "road trip", "trip"],
}

QUALITATIVE_SYSTEM_PROMPT = "You rate how well two friend groups would get along. Reply with a single integer from 0 to 100."


@dataclass
class Compatibility:
    score: float
    percentage: int
    breakdown: Dict[str, int] = field(default_factory=dict)


@dataclass
class GroupMatch:
    group: object
    compatibility: Compatibility

    @property
    def score(self) -> float:
        return self.compatibility.score


@dataclass
class BestMatch:
    group1: object
    group2: object
    compatibility: Compatibility


def _answer(profile, key: str) -> str:
    value = (getattr(profile, "answers", None) or {}).get(key)
    return str(value).strip() if value is not None else ""


def parse_size(raw: str) -> Optional[int]:
    match = re.search(r"\d+", raw or "")
    return int(match.group(0)) if match else None


def size_score(size1: int, size2: int) -> float:
    diff = abs(size1 - size2)
    if diff == 0:
        return 1.0
    if diff == 1:
        return 0.9
    if diff == 2:
        return 0.7
    if diff == 3:
        return 0.5
    return max(0.1, 0.5 - 0.1 * (diff - 3))


def size_match_percentage(profile1, profile2) -> int:
    size1 = parse_size(_answer(profile1, "group_size"))
    size2 = parse_size(_answer(profile2, "group_size"))
    if not size1 or not size2:
        return 0
    return round(size_score(size1, size2) * 100)


def _significant_words(text: str, min_length: int) -> set:
    return {word for word in text.split() if len(word) > min_length}


def _categories(text: str, table: Dict[str, List[str]]) -> set:
    return {name for name, terms in table.items() if any(term in text for term in terms)}


def music_genre(text: str) -> Optional[str]:
    """Coarse genre of a taste; when several buckets match, the last one in table order wins."""
    genre = None
    for name, terms in MUSIC_GENRES.items():
        if any(term in text for term in terms):
            genre = name
    return genre


def music_score(music1: str, music2: str) -> float:
    music1, music2 = music1.lower().strip(), music2.lower().strip()
    if music1 == music2:
        return 1.0
    genre1 = music_genre(music1)
    genre2 = music_genre(music2)
    if genre1 and genre2:
        return 0.8 if genre1 == genre2 else 0.3

    words1 = _significant_words(music1, 2)
    words2 = _significant_words(music2, 2)
    common = words1 & words2
    if not common:
        return 0.2
    overlap = len(common) / max(len(words1), len(words2))
    return max(0.2, min(0.5, overlap))


def activity_score(day1: str, day2: str) -> float:
    day1, day2 = day1.lower().strip(), day2.lower().strip()
    if day1 == day2:
        return 1.0
    shared = _categories(day1, ACTIVITY_CATEGORIES) & _categories(day2, ACTIVITY_CATEGORIES)
    if shared:
        return min(1.0, 0.7 + 0.1 * len(shared))
    common = _significant_words(day1, 3) & _significant_words(day2, 3)
    return min(0.6, 0.2 * len(common))


def emoji_score(emoji1: str, emoji2: str) -> float:
    return 0.8 if emoji1.lower().strip() == emoji2.lower().strip() else 0.3


def quantitative_score(profile1, profile2) -> float:
    """Weighted deterministic score; factors missing on either side are left out."""
    total = 0.0
    weight = 0.0

    size1 = parse_size(_answer(profile1, "group_size"))
    size2 = parse_size(_answer(profile2, "group_size"))
    if size1 and size2:
        total += size_score(size1, size2) * SIZE_WEIGHT
        weight += SIZE_WEIGHT

    music1, music2 = _answer(profile1, "music_taste"), _answer(profile2, "music_taste")
    if music1 and music2:
        total += music_score(music1, music2) * MUSIC_WEIGHT
        weight += MUSIC_WEIGHT

    day1, day2 = _answer(profile1, "ideal_day"), _answer(profile2, "ideal_day")
    if day1 and day2:
        total += activity_score(day1, day2) * ACTIVITY_WEIGHT
        weight += ACTIVITY_WEIGHT

    emoji1, emoji2 = _answer(profile1, "emoji"), _answer(profile2, "emoji")
    if emoji1 and emoji2:
        total += emoji_score(emoji1, emoji2) * EMOJI_WEIGHT
        weight += EMOJI_WEIGHT

    return total / weight if weight > 0 else NEUTRAL_SCORE


def _describe_group(label: str, profile) -> str:
    size = parse_size(_answer(profile, "group_size")) or 0
    lines = [
        f"{label}:",
        f"- Name: {profile.group_name}",
        f"- Group Size: {size} {'person' if size == 1 else 'people'}",
        f"- Ideal Day: {_answer(profile, 'ideal_day') or 'N/A'}",
        f"- Fiction Group: {_answer(profile, 'fiction_group') or 'N/A'}",
        f"- Music Taste: {_answer(profile, 'music_taste') or 'N/A'}",
        f"- Disliked Celebrity: {_answer(profile, 'disliked_celebrity') or 'N/A'}",
        f"- Origin Story: {_answer(profile, 'origin_story') or 'N/A'}",
        f"- Emoji: {_answer(profile, 'emoji') or 'N/A'}",
        f"- Roman Empire: {_answer(profile, 'roman_empire') or 'N/A'}",
        f"- Side Quest: {_answer(profile, 'side_quest') or 'N/A'}",
    ]
    extra = getattr(profile, "extra_data", None) or {}
    if extra:
        lines.append(f"- Preference data: {json.dumps(extra, ensure_ascii=False, sort_keys=True)}")
    return "\n".join(lines)


def build_qualitative_prompt(profile1, profile2) -> str:
    return (
        "Two friend groups want to be matched for hangouts.\n\n"
        "Priorities, in order:\n"
        "1. Group size similarity (3 vs 3 excellent, 3 vs 4 very good, 3 vs 8 poor)\n"
        "2. Shared interests: music, activities, references\n"
        "3. Alignment in preference data when both groups have it\n"
        "4. Cultural fit: vibe, energy, values\n"
        "5. Personalities that balance each other\n\n"
        f"{_describe_group('Group 1', profile1)}\n\n"
        f"{_describe_group('Group 2', profile2)}\n\n"
        "Scoring: sizes within 1 start at 70-100, a difference of 2-3 starts at 50-70, "
        "4 or more starts at 30-50. Add 5-15 per shared interest, subtract 5-10 for clashing vibes.\n"
        "Respond with ONLY a number from 0 to 100."
    )


def parse_qualitative_output(raw: str) -> float:
    match = re.match(r"\s*(-?\d+)", raw or "")
    if not match:
        return NEUTRAL_SCORE
    value = int(match.group(1))
    if value < 0 or value > 100:
        return NEUTRAL_SCORE
    return value / 100


async def qualitative_score(profile1, profile2) -> float:
    """LLM judgment in [0, 1]; neutral on timeout, error or unusable output."""
    try:
        raw = await asyncio.wait_for(
            llm_service.generate_text(
                build_qualitative_prompt(profile1, profile2),
                system_prompt=QUALITATIVE_SYSTEM_PROMPT,
                temperature=0.3,
                max_tokens=10,
                timeout_seconds=settings.qualitative_timeout_seconds,
            ),
            timeout=settings.qualitative_timeout_seconds,
        )
    except Exception as exc:
        logger.warning(
            "Qualitative scoring failed, using neutral score",
            extra={"context": {"group1": profile1.group_name, "group2": profile2.group_name, "error": repr(exc)}},
        )
        return NEUTRAL_SCORE
    return parse_qualitative_output(raw)


class PairScoreCache:
    """Scores computed during one matching run, keyed by unordered pair."""

    def __init__(self):
        self._scores: Dict[str, Compatibility] = {}

    def get(self, profile1, profile2) -> Optional[Compatibility]:
        return self._scores.get(make_pair_key(profile1.group_name, profile2.group_name))

    def put(self, profile1, profile2, compatibility: Compatibility) -> None:
        self._scores[make_pair_key(profile1.group_name, profile2.group_name)] = compatibility

    def __len__(self) -> int:
        return len(self._scores)


async def calculate_compatibility(profile1, profile2, cache: Optional[PairScoreCache] = None) -> Compatibility:
    if cache is not None:
        cached = cache.get(profile1, profile2)
        if cached is not None:
            return cached

    quantitative = quantitative_score(profile1, profile2)
    qualitative = await qualitative_score(profile1, profile2)
    score = QUANTITATIVE_WEIGHT * quantitative + QUALITATIVE_WEIGHT * qualitative
    compatibility = Compatibility(
        score=score,
        percentage=round(score * 100),
        breakdown={
            "quantitative": round(quantitative * 100),
            "qualitative": round(qualitative * 100),
            "sizeMatch": size_match_percentage(profile1, profile2),
        },
    )
    if cache is not None:
        cache.put(profile1, profile2, compatibility)
    return compatibility


async def rank_candidates(target, profiles, limit: int = 5, cache: Optional[PairScoreCache] = None) -> List[GroupMatch]:
    """Score target against every other profile; stable sort keeps store order on ties."""
    target_key = normalize_group_name(target.group_name)
    matches = []
    for candidate in profiles:
        if normalize_group_name(candidate.group_name) == target_key:
            continue
        compatibility = await calculate_compatibility(target, candidate, cache=cache)
        matches.append(GroupMatch(group=candidate, compatibility=compatibility))
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches[:limit]


async def find_matches_for_group(
    db: Session,
    group_name: str,
    limit: int = 5,
    cache: Optional[PairScoreCache] = None,
) -> List[GroupMatch]:
    target = get_profile_by_name(db, group_name)
    if target is None:
        logger.warning(f"Group not found for matching: {group_name}")
        return []
    return await rank_candidates(target, list_profiles(db), limit=limit, cache=cache)


async def find_best_match(db: Session, cache: Optional[PairScoreCache] = None) -> Optional[BestMatch]:
    """Highest scoring pair; on ties the first pair in store order wins."""
    profiles = list_profiles(db)
    if len(profiles) < 2:
        return None

    best: Optional[BestMatch] = None
    for i, first in enumerate(profiles):
        for second in profiles[i + 1:]:
            compatibility = await calculate_compatibility(first, second, cache=cache)
            if best is None or compatibility.score > best.compatibility.score:
                best = BestMatch(group1=first, group2=second, compatibility=compatibility)
    return best


def matching_stats(db: Session) -> dict:
    total = count_profiles(db)
    return {
        "total_groups": total,
        "total_possible_pairs": total * (total - 1) // 2,
        "can_match": total >= 2,
    }
