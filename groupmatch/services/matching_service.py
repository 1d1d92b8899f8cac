from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from groupmatch.logging_config import get_logger
from groupmatch.models.match import make_pair_key
from groupmatch.services import match_service
from groupmatch.services.compatibility_service import (
    PairScoreCache,
    find_best_match,
    rank_candidates,
)
from groupmatch.services.profile_service import list_profiles

logger = get_logger("matching_service")

PER_GROUP_LIMIT = 3


@dataclass
class MatchingRunSummary:
    total_groups: int
    matches_saved: int = 0
    best_match: Optional[dict] = None
    pairs_scored: int = 0
    errors: List[str] = field(default_factory=list)


async def run_matching_event(db: Session, per_group_limit: int = PER_GROUP_LIMIT) -> MatchingRunSummary:
    """Recompute all stored matches: best pair first, then top candidates per group.

    Existing records are cleared before saving, and records are upserted by
    unordered pair, so running twice over the same profiles leaves the same rows.
    """
    profiles = list_profiles(db)
    summary = MatchingRunSummary(total_groups=len(profiles))
    if len(profiles) < 2:
        logger.info("Not enough groups to match", extra={"context": {"total_groups": len(profiles)}})
        return summary

    match_service.clear_matches(db)
    cache = PairScoreCache()
    saved_pairs = set()

    best = await find_best_match(db, cache=cache)
    best_key = None
    if best is not None:
        result = match_service.save_match(db, best.group1, best.group2, best.compatibility, is_best_match=True)
        if result.ok:
            best_key = make_pair_key(best.group1.group_name, best.group2.group_name)
            saved_pairs.add(best_key)
            summary.best_match = {
                "group1": best.group1.group_name,
                "group2": best.group2.group_name,
                "percentage": best.compatibility.percentage,
                "breakdown": best.compatibility.breakdown,
            }
        else:
            summary.errors.append(result.error)

    for profile in profiles:
        candidates = await rank_candidates(profile, profiles, limit=per_group_limit, cache=cache)
        for candidate in candidates:
            pair_key = make_pair_key(profile.group_name, candidate.group.group_name)
            if pair_key == best_key:
                continue
            result = match_service.save_match(db, profile, candidate.group, candidate.compatibility)
            if result.ok:
                saved_pairs.add(pair_key)
            else:
                summary.errors.append(result.error)

    summary.matches_saved = len(saved_pairs)
    summary.pairs_scored = len(cache)
    logger.info(
        "Matching run finished",
        extra={
            "context": {
                "total_groups": summary.total_groups,
                "matches_saved": summary.matches_saved,
                "pairs_scored": summary.pairs_scored,
            }
        },
    )
    return summary
