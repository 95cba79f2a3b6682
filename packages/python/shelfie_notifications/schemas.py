from datetime import datetime

from pydantic import BaseModel, Field

from shelfie_core.types import NotificationType


class Notification(BaseModel):
    id: str
    type: NotificationType
    actor_id: str
    actor_username: str = "User"
    actor_avatar_url: str | None = None
    # like only
    rating_id: str | None = None
    rating_title: str | None = None
    rating_type: str | None = None
    # recommendation only
    rec_content_type: str | None = None
    rec_content_id: str | None = None
    rec_content_title: str | None = None
    rec_content_image: str | None = None
    is_read: bool = False
    created_at: datetime


class MarkReadIn(BaseModel):
    ids: list[str] = Field(min_length=1)
