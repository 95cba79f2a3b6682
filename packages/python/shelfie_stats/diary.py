from __future__ import annotations

from datetime import date, datetime, time, tzinfo
from typing import Iterable

from pydantic import BaseModel

from shelfie_core.timeutils import date_key, resolve_tz
from shelfie_core.types import ContentTypeField


class DiaryEntry(BaseModel):
    id: str
    content_type: ContentTypeField
    content_id: str
    content_title: str
    content_image_url: str | None = None
    score: float
    created_at: datetime


DiaryMonth = dict[str, list[DiaryEntry]]


def month_window(year: int, month: int, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """[first day of month, first day of next month) at local midnight."""
    if not 1 <= month <= 12:
        raise ValueError("month must be 1..12")
    zone = tz or resolve_tz()
    start = datetime.combine(date(year, month, 1), time(0, 0), tzinfo=zone)
    if month == 12:
        nxt = date(year + 1, 1, 1)
    else:
        nxt = date(year, month + 1, 1)
    end = datetime.combine(nxt, time(0, 0), tzinfo=zone)
    return start, end


def group_diary(entries: Iterable[DiaryEntry], tz: tzinfo | None = None) -> DiaryMonth:
    """Bucket by local YYYY-MM-DD of each entry's own timestamp; every entry
    is kept, oldest first within a day."""
    zone = tz or resolve_tz()
    buckets: DiaryMonth = {}
    for entry in sorted(entries, key=lambda e: e.created_at):
        key = date_key(entry.created_at.astimezone(zone).date())
        buckets.setdefault(key, []).append(entry)
    return dict(sorted(buckets.items()))
