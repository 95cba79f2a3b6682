from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, cast

from fastapi import HTTPException, Request, status

from shelfie_challenges.flag_store import FlagStore
from app.sessions import SessionRegistry


def _get_state_attr(request: Request, name: str, error_detail: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail,
        )
    return value


def get_settings(request: Request) -> Any:
    return _get_state_attr(request, "settings", "Settings not initialized")


def get_sessions(request: Request) -> SessionRegistry:
    return cast(
        SessionRegistry,
        _get_state_attr(request, "sessions", "Session registry not initialized"),
    )


def get_flag_store(request: Request) -> FlagStore:
    return cast(
        FlagStore, _get_state_attr(request, "flag_store", "Flag store not initialized")
    )


def get_tz(request: Request) -> tzinfo:
    return cast(tzinfo, _get_state_attr(request, "tz", "Timezone not initialized"))


@dataclass(frozen=True)
class SupabaseCreds:
    url: str
    api_key: str


def get_supabase_creds(request: Request) -> SupabaseCreds:
    return SupabaseCreds(
        url=getattr(request.app.state, "supabase_url", "") or "",
        api_key=getattr(request.app.state, "supabase_api_key", "") or "",
    )
