from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class GroupAnswers(BaseModel):
    """The ten named interview answers, all required and non-blank."""

    group_name: str
    group_size: str
    ideal_day: str
    fiction_group: str
    music_taste: str
    disliked_celebrity: str
    origin_story: str
    emoji: str
    roman_empire: str
    side_quest: str

    @field_validator("*", mode="before")
    @classmethod
    def _strip(cls, value):
        if value is None:
            raise ValueError("answer is required")
        text = str(value).strip()
        if not text:
            raise ValueError("answer must not be blank")
        return text


class GroupProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    group_name: str
    chat_id: Optional[str] = None
    answers: dict
    extra_data: dict = {}
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class EnrichmentIn(BaseModel):
    """Auxiliary preference data merged into a profile's ``extra_data``."""

    extra_data: Dict[str, Any]
