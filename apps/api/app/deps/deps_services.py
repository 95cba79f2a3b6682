from datetime import tzinfo
from typing import Any, Optional

from fastapi import Depends

from shelfie_cache.query_client import QueryClient
from shelfie_challenges.challenges_service import ChallengesService
from shelfie_challenges.flag_store import CelebrationGate, FlagStore
from shelfie_challenges.supabase_repo import SupabaseChallengesRepo
from shelfie_library.bookmarks_repo import SupabaseBookmarksRepo
from shelfie_library.bookmarks_service import BookmarksService
from shelfie_library.content_repo import SupabaseContentRepo
from shelfie_library.content_service import ContentService
from shelfie_library.profile_service import ProfileService
from shelfie_library.ratings_repo import SupabaseRatingsRepo
from shelfie_notifications.notifications_service import NotificationsService
from shelfie_notifications.supabase_repo import SupabaseNotificationsRepo
from shelfie_social.social_service import SocialService
from shelfie_social.supabase_repo import SupabaseSocialRepo
from shelfie_stats.community_score import make_provider
from app.deps.deps import get_flag_store, get_sessions, get_settings, get_tz
from app.deps.supabase_client import get_current_user_id, get_supabase_client
from app.deps.supabase_optional import get_optional_user_id, get_supabase_client_optional
from app.sessions import SessionRegistry


async def get_query_client(
    user_id: str = Depends(get_current_user_id),
    sessions: SessionRegistry = Depends(get_sessions),
) -> QueryClient:
    return await sessions.acquire(user_id)


async def get_optional_query_client(
    user_id: Optional[str] = Depends(get_optional_user_id),
    sessions: SessionRegistry = Depends(get_sessions),
) -> QueryClient:
    if not user_id:
        return sessions.anonymous
    return await sessions.acquire(user_id)


def get_profile_service(
    client=Depends(get_supabase_client),
    queries: QueryClient = Depends(get_query_client),
    user_id: str = Depends(get_current_user_id),
    tz: tzinfo = Depends(get_tz),
) -> ProfileService:
    return ProfileService(
        queries,
        SupabaseRatingsRepo(client),
        SupabaseContentRepo(client),
        user_id,
        tz=tz,
    )


def _content_service(client, queries: QueryClient, user_id, settings: Any) -> ContentService:
    ratings = SupabaseRatingsRepo(client)
    return ContentService(
        queries,
        ratings,
        SupabaseContentRepo(client),
        make_provider(settings.community_score_mode, ratings),
        user_id,
    )


def get_content_service(
    client=Depends(get_supabase_client),
    queries: QueryClient = Depends(get_query_client),
    user_id: str = Depends(get_current_user_id),
    settings=Depends(get_settings),
) -> ContentService:
    return _content_service(client, queries, user_id, settings)


def get_public_content_service(
    client=Depends(get_supabase_client_optional),
    queries: QueryClient = Depends(get_optional_query_client),
    user_id: Optional[str] = Depends(get_optional_user_id),
    settings=Depends(get_settings),
) -> ContentService:
    return _content_service(client, queries, user_id, settings)


def get_social_service(
    client=Depends(get_supabase_client),
    queries: QueryClient = Depends(get_query_client),
    user_id: str = Depends(get_current_user_id),
) -> SocialService:
    return SocialService(queries, SupabaseSocialRepo(client), user_id)


def get_public_social_service(
    client=Depends(get_supabase_client_optional),
    queries: QueryClient = Depends(get_optional_query_client),
    user_id: Optional[str] = Depends(get_optional_user_id),
) -> SocialService:
    return SocialService(queries, SupabaseSocialRepo(client), user_id)


def get_notifications_service(
    client=Depends(get_supabase_client),
    queries: QueryClient = Depends(get_query_client),
    user_id: str = Depends(get_current_user_id),
) -> NotificationsService:
    return NotificationsService(queries, SupabaseNotificationsRepo(client), user_id)


def get_challenges_service(
    client=Depends(get_supabase_client),
    queries: QueryClient = Depends(get_query_client),
    user_id: str = Depends(get_current_user_id),
    flags: FlagStore = Depends(get_flag_store),
    tz: tzinfo = Depends(get_tz),
) -> ChallengesService:
    return ChallengesService(
        queries, SupabaseChallengesRepo(client), CelebrationGate(flags), user_id, tz=tz
    )


def get_bookmarks_service(
    client=Depends(get_supabase_client),
    queries: QueryClient = Depends(get_query_client),
    user_id: str = Depends(get_current_user_id),
) -> BookmarksService:
    return BookmarksService(queries, SupabaseBookmarksRepo(client), user_id)
