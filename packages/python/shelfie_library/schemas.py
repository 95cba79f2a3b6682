from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from shelfie_core.types import ContentStatusValue, ContentTypeField
from shelfie_stats.diary import DiaryEntry
from shelfie_stats.rounding import round1


class RatingCreate(BaseModel):
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None
    score: float = Field(ge=1, le=10)
    review_text: str | None = None
    has_spoiler: bool = False

    @field_validator("score")
    @classmethod
    def one_decimal(cls, v: float) -> float:
        return round1(v)


class RatingRecord(BaseModel):
    id: str
    user_id: str
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None
    score: float
    review_text: str | None = None
    has_spoiler: bool = False
    created_at: datetime


class RatingHistoryItem(DiaryEntry):
    pass


class ContentStatusUpsert(BaseModel):
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None
    status: ContentStatusValue


class ContentStatusRecord(BaseModel):
    id: str
    user_id: str
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None
    status: ContentStatusValue
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PendingItem(BaseModel):
    id: str
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None
    status: Literal["want", "doing"]


class PinItemCreate(BaseModel):
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None


class PinnedItem(BaseModel):
    id: str
    user_id: str
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None
    position: int = Field(ge=1, le=5)
    created_at: datetime | None = None


class PinPosition(BaseModel):
    id: str
    position: int = Field(ge=1, le=5)


class ReportCreate(BaseModel):
    item_id: str
    reason: str = Field(min_length=1)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason cannot be empty")
        return v


class BookmarkToggle(BaseModel):
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None


class Bookmark(BaseModel):
    id: str
    user_id: str
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None
    created_at: datetime | None = None
