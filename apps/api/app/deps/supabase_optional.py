"""Anonymous-friendly variants for public reads (community score, counts, feed)."""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from supabase import Client

from app.deps.deps import SupabaseCreds, get_supabase_creds
from app.deps.supabase_client import bearer_scheme, resolve_user_id, user_client

log = logging.getLogger(__name__)


def get_optional_bearer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    if credentials is None:
        return None
    return credentials.credentials.strip() or None


def get_supabase_client_optional(
    token: Optional[str] = Depends(get_optional_bearer),
    creds: SupabaseCreds = Depends(get_supabase_creds),
) -> Client:
    return user_client(creds, token)


def get_optional_user_id(
    client: Client = Depends(get_supabase_client_optional),
    token: Optional[str] = Depends(get_optional_bearer),
) -> Optional[str]:
    if token is None:
        return None
    try:
        return resolve_user_id(client, token)
    except Exception as exc:
        # a bad token on a public read degrades to anonymous
        log.debug("reading anonymously: %s", exc)
        return None
