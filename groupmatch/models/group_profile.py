import uuid

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.sql import func

from groupmatch.database import Base
from groupmatch.models.base import utcnow


def normalize_group_name(name: str) -> str:
    return " ".join((name or "").split()).casefold()


class GroupProfile(Base):
    __tablename__ = "group_profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    group_name = Column(String(255), nullable=False)
    group_name_key = Column(String(255), nullable=False, unique=True, index=True)
    chat_id = Column(String(255), index=True)
    answers = Column(JSON, nullable=False, default=dict)
    extra_data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    completed_at = Column(DateTime(timezone=True))
