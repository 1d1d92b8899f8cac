from typing import Dict, List, Optional

from pydantic import BaseModel


class CompatibilityOut(BaseModel):
    score: float
    percentage: int
    breakdown: Dict[str, int]


class GroupMatchOut(BaseModel):
    group_name: str
    compatibility: CompatibilityOut


class BestMatchOut(BaseModel):
    group1: str
    group2: str
    compatibility: CompatibilityOut


class MatchRecordOut(BaseModel):
    group1_name: str
    group2_name: str
    score: float
    percentage: int
    quantitative: int
    qualitative: int
    size_match: int
    is_best_match: bool


class MatchingRunOut(BaseModel):
    total_groups: int
    matches_saved: int
    pairs_scored: int
    best_match: Optional[dict] = None
    errors: List[str] = []


class StatsOut(BaseModel):
    total_profiles: int
    active_interviews: int
    total_matches: int
    total_possible_pairs: int
    can_match: bool
    groups: List[str]
