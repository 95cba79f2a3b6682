from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, Field

from shelfie_core.types import to_content_type

ALL_CATEGORIES = "all"


def to_category_filter(value) -> str:
    raw = str(getattr(value, "value", value) or "").strip().lower()
    if raw in ("", ALL_CATEGORIES):
        return ALL_CATEGORIES
    return to_content_type(raw).value


CategoryFilter = Annotated[str, BeforeValidator(to_category_filter)]


class Challenge(BaseModel):
    id: str
    user_id: str
    year: int
    target_count: int
    category_filter: CategoryFilter = ALL_CATEGORIES
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ChallengeCreate(BaseModel):
    year: int | None = None
    target_count: int = Field(ge=1)
    category_filter: CategoryFilter = ALL_CATEGORIES


class ChallengeProgress(BaseModel):
    challenge: Challenge
    progress: int = 0
    percentage: int = 0
    completed: bool = False
    should_celebrate: bool = False
