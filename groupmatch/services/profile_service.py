from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from groupmatch.logging_config import get_logger
from groupmatch.models import GroupProfile
from groupmatch.models.group_profile import normalize_group_name
from groupmatch.schemas.profile import GroupAnswers
from groupmatch.services.result import Result

logger = get_logger("profile_service")


def group_name_exists(db: Session, name: str) -> bool:
    """Case-insensitive check against completed profiles."""
    key = normalize_group_name(name)
    if not key:
        return False
    return db.query(GroupProfile.id).filter(GroupProfile.group_name_key == key).first() is not None


def create_profile(
    db: Session,
    answers: dict,
    chat_id: Optional[str] = None,
    extra_data: Optional[dict] = None,
) -> Result[GroupProfile]:
    """Persist a completed interview. The unique name key closes the check/insert race."""
    try:
        validated = GroupAnswers.model_validate(answers or {})
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        return Result.failure(f"Incomplete answers: {', '.join(missing)}", "incomplete_answers")

    profile = GroupProfile(
        group_name=validated.group_name,
        group_name_key=normalize_group_name(validated.group_name),
        chat_id=chat_id,
        answers=validated.model_dump(),
        extra_data=extra_data or {},
        completed_at=datetime.now(timezone.utc),
    )
    # A name clash rolls back only the savepoint, never the caller's pending changes.
    db.flush()
    try:
        with db.begin_nested():
            db.add(profile)
            db.flush()
    except IntegrityError:
        logger.warning(
            "Duplicate group name rejected",
            extra={"context": {"group_name": validated.group_name, "chat_id": chat_id}},
        )
        return Result.failure(f"Group name already taken: {validated.group_name}", "duplicate_group_name")

    logger.info(
        "Group profile saved",
        extra={"context": {"group_name": profile.group_name, "profile_id": profile.id, "chat_id": chat_id}},
    )
    return Result.success(profile)


def get_profile_by_name(db: Session, name: str) -> Optional[GroupProfile]:
    return db.query(GroupProfile).filter(GroupProfile.group_name_key == normalize_group_name(name)).first()


def get_profile_by_chat_id(db: Session, chat_id: str) -> Optional[GroupProfile]:
    return (
        db.query(GroupProfile)
        .filter(GroupProfile.chat_id == chat_id)
        .order_by(GroupProfile.created_at.desc())
        .first()
    )


def list_profiles(db: Session) -> List[GroupProfile]:
    """All profiles in insertion order; matching relies on this order for ties."""
    return db.query(GroupProfile).order_by(GroupProfile.created_at, GroupProfile.id).all()


def update_enrichment(db: Session, group_name: str, extra_data: dict) -> Result[GroupProfile]:
    """Merge auxiliary data into a profile. Interview answers stay untouched."""
    profile = get_profile_by_name(db, group_name)
    if profile is None:
        return Result.failure(f"Group not found: {group_name}", "not_found")
    profile.extra_data = {**(profile.extra_data or {}), **(extra_data or {})}
    db.flush()
    return Result.success(profile)


def count_profiles(db: Session) -> int:
    return db.query(GroupProfile).count()
