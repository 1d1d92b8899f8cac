from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from groupmatch.database import Base
from groupmatch.models.base import utcnow

CURRENT_SCHEMA_VERSION = 2


class InterviewState(Base):
    __tablename__ = "interview_states"

    chat_id = Column(String(255), primary_key=True)
    question_number = Column(Integer, nullable=False, default=1)
    answers = Column(JSON, nullable=False, default=dict)
    waiting_for_clarification = Column(Boolean, nullable=False, default=False)
    clarification_question = Column(Text)
    clarification_count = Column(Integer, nullable=False, default=0)
    group_name = Column(String(255))
    schema_version = Column(Integer, nullable=False, default=CURRENT_SCHEMA_VERSION)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)
