import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from groupmatch.database import Base
from groupmatch.models.base import utcnow
from groupmatch.models.group_profile import normalize_group_name


def make_pair_key(name_a: str, name_b: str) -> str:
    """Order-independent key for a pair of groups."""
    first, second = sorted([normalize_group_name(name_a), normalize_group_name(name_b)])
    return f"{first}::{second}"


class MatchRecord(Base):
    __tablename__ = "matches"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    pair_key = Column(String(512), nullable=False, unique=True, index=True)
    group1_name = Column(String(255), nullable=False)
    group2_name = Column(String(255), nullable=False)
    group1_id = Column(String(36))
    group2_id = Column(String(36))
    score = Column(Float, nullable=False)
    percentage = Column(Integer, nullable=False)
    quantitative = Column(Integer, nullable=False, default=0)
    qualitative = Column(Integer, nullable=False, default=0)
    size_match = Column(Integer, nullable=False, default=0)
    is_best_match = Column(Boolean, nullable=False, default=False)
    matched_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
