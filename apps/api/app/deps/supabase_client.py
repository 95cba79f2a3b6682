import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client, create_client

from shelfie_core.errors import GatewayError, NotAuthenticated
from app.deps.deps import SupabaseCreds, get_supabase_creds

log = logging.getLogger(__name__)

# auto_error=False so a missing header becomes our own 401 body
bearer_scheme = HTTPBearer(auto_error=False)


def user_client(creds: SupabaseCreds, token: Optional[str]) -> Client:
    """Supabase client for one request; PostgREST carries the user's JWT when given."""
    try:
        client = create_client(creds.url, creds.api_key)
    except Exception as exc:
        raise GatewayError(f"supabase init failed: {exc}") from exc
    if token:
        client.postgrest.auth(token)
    return client


def resolve_user_id(client: Client, token: str) -> Optional[str]:
    """GoTrue lookup; None when the token does not map to a user."""
    resp = client.auth.get_user(token)
    user = getattr(resp, "user", None)
    if user is None:
        return None
    return getattr(user, "id", None) or None


def require_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    token = credentials.credentials.strip() if credentials else ""
    if not token:
        raise NotAuthenticated("missing bearer token")
    return token


def get_supabase_client(
    token: str = Depends(require_bearer_token),
    creds: SupabaseCreds = Depends(get_supabase_creds),
) -> Client:
    return user_client(creds, token)


def get_current_user_id(
    client: Client = Depends(get_supabase_client),
    token: str = Depends(require_bearer_token),
) -> str:
    try:
        user_id = resolve_user_id(client, token)
    except Exception as exc:
        log.info("token rejected by auth: %s", exc)
        raise NotAuthenticated("invalid or expired token") from exc
    if not user_id:
        raise NotAuthenticated("invalid or expired token")
    return user_id
