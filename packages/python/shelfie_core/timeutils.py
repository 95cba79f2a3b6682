from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from zoneinfo import ZoneInfo


def ensure_ts(value) -> datetime | None:
    """Normalize timestamps coming from Postgres/Supabase into tz-aware datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        # Supabase returns ISO strings that may end with `Z`; make them explicit UTC.
        normalized = raw.replace("Z", "+00:00") if raw.endswith("Z") else raw
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def resolve_tz(name: str | None = None) -> tzinfo:
    """IANA zone by name, or the process local zone when no name is given."""
    if name:
        return ZoneInfo(name)
    return datetime.now().astimezone().tzinfo or timezone.utc


def local_date(ts: datetime, tz: tzinfo | None = None) -> date:
    return ts.astimezone(tz or resolve_tz()).date()


def date_key(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def local_noon(d: date, tz: tzinfo) -> datetime:
    return datetime.combine(d, time(12, 0), tzinfo=tz)


def to_iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat()
