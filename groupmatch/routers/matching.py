"""Admin endpoints for the matching event and stored data."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from groupmatch.config import settings
from groupmatch.database import get_db
from groupmatch.logging_config import get_logger
from groupmatch.schemas.matching import (
    BestMatchOut,
    CompatibilityOut,
    GroupMatchOut,
    MatchingRunOut,
    MatchRecordOut,
    StatsOut,
)
from groupmatch.schemas.profile import EnrichmentIn, GroupProfileOut
from groupmatch.services import match_service
from groupmatch.services.compatibility_service import find_best_match, find_matches_for_group, matching_stats
from groupmatch.services.interview_state_service import count_active
from groupmatch.services.matching_service import run_matching_event
from groupmatch.services.profile_service import get_profile_by_name, list_profiles, update_enrichment

logger = get_logger("matching_router")

router = APIRouter(prefix="/admin")


def _require_admin_token(x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token")) -> None:
    expected = settings.admin_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="ADMIN_TOKEN not configured",
        )
    if not x_admin_token or x_admin_token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


def _compatibility_out(compatibility) -> CompatibilityOut:
    return CompatibilityOut(
        score=compatibility.score,
        percentage=compatibility.percentage,
        breakdown=compatibility.breakdown,
    )


@router.post("/matching/run", response_model=MatchingRunOut, dependencies=[Depends(_require_admin_token)])
async def run_matching(db: Session = Depends(get_db)):
    summary = await run_matching_event(db)
    db.commit()
    return MatchingRunOut(
        total_groups=summary.total_groups,
        matches_saved=summary.matches_saved,
        pairs_scored=summary.pairs_scored,
        best_match=summary.best_match,
        errors=summary.errors,
    )


@router.get("/matching/best", response_model=Optional[BestMatchOut], dependencies=[Depends(_require_admin_token)])
async def best_match(db: Session = Depends(get_db)):
    best = await find_best_match(db)
    if best is None:
        return None
    return BestMatchOut(
        group1=best.group1.group_name,
        group2=best.group2.group_name,
        compatibility=_compatibility_out(best.compatibility),
    )


@router.get(
    "/groups/{group_name}/candidates",
    response_model=List[GroupMatchOut],
    dependencies=[Depends(_require_admin_token)],
)
async def group_candidates(group_name: str, limit: int = Query(default=5, ge=1, le=50), db: Session = Depends(get_db)):
    if get_profile_by_name(db, group_name) is None:
        raise HTTPException(status_code=404, detail=f"Group not found: {group_name}")
    matches = await find_matches_for_group(db, group_name, limit=limit)
    return [
        GroupMatchOut(group_name=m.group.group_name, compatibility=_compatibility_out(m.compatibility))
        for m in matches
    ]


@router.get(
    "/groups/{group_name}/matches",
    response_model=List[MatchRecordOut],
    dependencies=[Depends(_require_admin_token)],
)
def group_matches(group_name: str, db: Session = Depends(get_db)):
    return [_record_out(r) for r in match_service.get_matches_for_group(db, group_name)]


@router.get("/groups", response_model=List[GroupProfileOut], dependencies=[Depends(_require_admin_token)])
def groups(db: Session = Depends(get_db)):
    return [GroupProfileOut.model_validate(p) for p in list_profiles(db)]


@router.put(
    "/groups/{group_name}/enrichment",
    response_model=GroupProfileOut,
    dependencies=[Depends(_require_admin_token)],
)
def enrich_group(group_name: str, payload: EnrichmentIn, db: Session = Depends(get_db)):
    result = update_enrichment(db, group_name, payload.extra_data)
    if not result.ok:
        raise HTTPException(status_code=404, detail=result.error)
    db.commit()
    logger.info("Group enriched", extra={"context": {"group_name": group_name, "keys": sorted(payload.extra_data)}})
    return GroupProfileOut.model_validate(result.value)


@router.get("/matches", response_model=List[MatchRecordOut], dependencies=[Depends(_require_admin_token)])
def matches(db: Session = Depends(get_db)):
    return [_record_out(r) for r in match_service.list_matches(db)]


@router.get("/stats", response_model=StatsOut, dependencies=[Depends(_require_admin_token)])
def stats(db: Session = Depends(get_db)):
    match_stats = matching_stats(db)
    return StatsOut(
        total_profiles=match_stats["total_groups"],
        active_interviews=count_active(db),
        total_matches=match_service.count_matches(db),
        total_possible_pairs=match_stats["total_possible_pairs"],
        can_match=match_stats["can_match"],
        groups=[p.group_name for p in list_profiles(db)],
    )


def _record_out(record) -> MatchRecordOut:
    return MatchRecordOut(
        group1_name=record.group1_name,
        group2_name=record.group2_name,
        score=record.score,
        percentage=record.percentage,
        quantitative=record.quantitative,
        qualitative=record.qualitative,
        size_match=record.size_match,
        is_best_match=record.is_best_match,
    )
