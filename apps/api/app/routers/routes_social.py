from fastapi import APIRouter, Depends, Query

from app.deps.deps_services import get_public_social_service, get_social_service
from app.schemas import ChangedOut, ResultOut, ToggleOut, paged_out, result_out
from shelfie_social.social_service import SocialService

router = APIRouter(prefix="/social", tags=["social"])


# ---- Feed ----
@router.get("/feed", response_model=ResultOut)
async def get_feed(
    more: bool = Query(False, description="append the next page"),
    svc: SocialService = Depends(get_social_service),
):
    return paged_out(await svc.feed(next_page=more))


# ---- Discovery ----
@router.get("/trending", response_model=ResultOut)
async def get_friends_trending(svc: SocialService = Depends(get_social_service)):
    return result_out(await svc.friends_trending())


@router.get("/users/search", response_model=ResultOut)
async def search_users(
    q: str = Query("", max_length=100),
    svc: SocialService = Depends(get_social_service),
):
    return result_out(await svc.search_users(q))


# ---- Follow graph ----
@router.get("/users/{user_id}/followers", response_model=ResultOut)
async def get_followers(user_id: str, svc: SocialService = Depends(get_social_service)):
    return result_out(await svc.followers(user_id))


@router.get("/users/{user_id}/following", response_model=ResultOut)
async def get_following(user_id: str, svc: SocialService = Depends(get_social_service)):
    return result_out(await svc.following(user_id))


@router.get("/users/{user_id}/follow-counts", response_model=ResultOut)
async def get_follow_counts(user_id: str, svc: SocialService = Depends(get_social_service)):
    return result_out(await svc.follow_counts(user_id))


@router.get("/users/{user_id}/is-following", response_model=ResultOut)
async def get_is_following(user_id: str, svc: SocialService = Depends(get_social_service)):
    return result_out(await svc.is_following(user_id))


@router.post("/users/{user_id}/follow", response_model=ChangedOut)
async def follow(user_id: str, svc: SocialService = Depends(get_social_service)):
    return ChangedOut(changed=await svc.follow(user_id))


@router.delete("/users/{user_id}/follow", response_model=ChangedOut)
async def unfollow(user_id: str, svc: SocialService = Depends(get_social_service)):
    return ChangedOut(changed=await svc.unfollow(user_id))


@router.post("/users/{user_id}/follow/toggle", response_model=ToggleOut)
async def toggle_follow(user_id: str, svc: SocialService = Depends(get_social_service)):
    return ToggleOut(active=await svc.toggle_follow(user_id))


# ---- Likes ----
@router.get("/ratings/{rating_id}/like", response_model=ResultOut)
async def get_rating_like(rating_id: str, svc: SocialService = Depends(get_social_service)):
    return result_out(await svc.rating_like(rating_id))


@router.get("/ratings/{rating_id}/likes-count", response_model=ResultOut)
async def get_rating_likes_count(
    rating_id: str, svc: SocialService = Depends(get_public_social_service)
):
    return result_out(await svc.rating_likes_count(rating_id))


@router.post("/ratings/{rating_id}/like", response_model=ChangedOut)
async def like(rating_id: str, svc: SocialService = Depends(get_social_service)):
    return ChangedOut(changed=await svc.like(rating_id))


@router.delete("/ratings/{rating_id}/like", response_model=ChangedOut)
async def unlike(rating_id: str, svc: SocialService = Depends(get_social_service)):
    return ChangedOut(changed=await svc.unlike(rating_id))


@router.post("/ratings/{rating_id}/like/toggle", response_model=ToggleOut)
async def toggle_like(rating_id: str, svc: SocialService = Depends(get_social_service)):
    return ToggleOut(active=await svc.toggle_like(rating_id))
