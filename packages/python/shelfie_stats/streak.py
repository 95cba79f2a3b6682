from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Iterable

from shelfie_core.timeutils import ensure_ts, local_noon, resolve_tz


def _day_diff(newer: date, older: date, tz: tzinfo) -> int:
    # Both sides anchored at local noon so a DST shift can't move the count.
    delta = local_noon(newer, tz) - local_noon(older, tz)
    return round(delta.total_seconds() / 86400)


def calc_streak(
    timestamps: Iterable[datetime | str],
    *,
    today: date | None = None,
    tz: tzinfo | None = None,
) -> int:
    """
    Consecutive local calendar days, ending today, with at least one rating.

    - No rating today -> 0, even if yesterday had one.
    - Counting stops at the first gap of more than one day.
    - Unparseable timestamps are ignored.
    """
    zone = tz or resolve_tz()
    days = {
        parsed.astimezone(zone).date()
        for ts in timestamps
        if (parsed := ensure_ts(ts)) is not None
    }
    if not days:
        return 0

    ordered = sorted(days, reverse=True)
    current = today or datetime.now(zone).date()
    if ordered[0] != current:
        return 0

    streak = 1
    for newer, older in zip(ordered, ordered[1:]):
        if _day_diff(newer, older, zone) == 1:
            streak += 1
        else:
            break
    return streak
