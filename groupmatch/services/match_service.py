from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from groupmatch.logging_config import get_logger
from groupmatch.models import MatchRecord
from groupmatch.models.group_profile import normalize_group_name
from groupmatch.models.match import make_pair_key
from groupmatch.services.result import Result

logger = get_logger("match_service")


def save_match(
    db: Session,
    group1,
    group2,
    compatibility,
    is_best_match: bool = False,
) -> Result[MatchRecord]:
    """Insert or replace the record for an unordered pair of profiles."""
    if normalize_group_name(group1.group_name) == normalize_group_name(group2.group_name):
        return Result.failure("A group cannot be matched with itself", "self_match")

    pair_key = make_pair_key(group1.group_name, group2.group_name)
    record = db.query(MatchRecord).filter(MatchRecord.pair_key == pair_key).first()
    if record is None:
        record = MatchRecord(pair_key=pair_key)
        db.add(record)

    breakdown = compatibility.breakdown
    record.group1_name = group1.group_name
    record.group2_name = group2.group_name
    record.group1_id = group1.id
    record.group2_id = group2.id
    record.score = compatibility.score
    record.percentage = compatibility.percentage
    record.quantitative = breakdown["quantitative"]
    record.qualitative = breakdown["qualitative"]
    record.size_match = breakdown["sizeMatch"]
    record.is_best_match = is_best_match or bool(record.is_best_match)
    db.flush()
    return Result.success(record)


def clear_matches(db: Session) -> int:
    deleted = db.query(MatchRecord).delete()
    db.flush()
    logger.info(f"Cleared {deleted} existing matches")
    return deleted


def list_matches(db: Session) -> List[MatchRecord]:
    return (
        db.query(MatchRecord)
        .order_by(MatchRecord.is_best_match.desc(), MatchRecord.score.desc(), MatchRecord.pair_key)
        .all()
    )


def get_matches_for_group(db: Session, group_name: str) -> List[MatchRecord]:
    """Records naming the group on either side, highest score first."""
    key = normalize_group_name(group_name)
    records = (
        db.query(MatchRecord)
        .filter(or_(MatchRecord.pair_key.like(f"{key}::%"), MatchRecord.pair_key.like(f"%::{key}")))
        .order_by(MatchRecord.score.desc())
        .all()
    )
    return [
        r
        for r in records
        if key in (normalize_group_name(r.group1_name), normalize_group_name(r.group2_name))
    ]


def count_matches(db: Session) -> int:
    return db.query(MatchRecord).count()
