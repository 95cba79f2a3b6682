from enum import Enum
from typing import Annotated

from pydantic import BeforeValidator


class ContentType(str, Enum):
    MOVIE = "movie"
    SERIES = "series"
    BOOK = "book"
    GAME = "game"
    MUSIC = "music"
    PODCAST = "podcast"
    CUSTOM = "custom"


# The app surface calls custom items "anything"; the ratings table stores "custom".
_CONTENT_TYPE_ALIASES = {"anything": ContentType.CUSTOM, "tv": ContentType.SERIES}


def to_content_type(value: str | ContentType) -> ContentType:
    if isinstance(value, ContentType):
        return value
    raw = (value or "").strip().lower()
    if raw in _CONTENT_TYPE_ALIASES:
        return _CONTENT_TYPE_ALIASES[raw]
    return ContentType(raw)


ContentTypeField = Annotated[ContentType, BeforeValidator(to_content_type)]


class ContentStatusValue(str, Enum):
    WANT = "want"
    DOING = "doing"
    DONE = "done"
    DROPPED = "dropped"


PENDING_STATUSES = (ContentStatusValue.WANT, ContentStatusValue.DOING)


class NotificationType(str, Enum):
    FOLLOW = "follow"
    LIKE = "like"
    RECOMMENDATION = "recommendation"
