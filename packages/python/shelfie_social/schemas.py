from datetime import datetime

from pydantic import BaseModel

from shelfie_core.types import ContentTypeField


class ProfileSummary(BaseModel):
    id: str
    username: str = ""
    display_name: str | None = None
    avatar_url: str | None = None
    is_private: bool = False
    created_at: datetime | None = None


class FeedItem(BaseModel):
    id: str
    user_id: str
    username: str = ""
    user_display_name: str | None = None
    user_avatar_url: str | None = None
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None
    score: float
    review_text: str | None = None
    has_spoiler: bool = False
    created_at: datetime
    likes_count: int = 0


class FollowCounts(BaseModel):
    followers: int = 0
    following: int = 0
