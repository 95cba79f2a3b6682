from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.deps.deps_services import get_bookmarks_service, get_profile_service
from app.schemas import ResultOut, paged_out, result_out
from shelfie_library.bookmarks_service import BookmarksService
from shelfie_library.profile_service import ProfileService

router = APIRouter(prefix="/me", tags=["me"])


@router.get("/streak", response_model=ResultOut)
async def get_streak(
    wait: bool = Query(True, description="false returns the cached value at once"),
    svc: ProfileService = Depends(get_profile_service),
):
    if not wait:
        return result_out(svc.streak_snapshot())
    return result_out(await svc.streak())


@router.get("/stats", response_model=ResultOut)
async def get_stats(svc: ProfileService = Depends(get_profile_service)):
    return result_out(await svc.stats())


@router.get("/score-distribution", response_model=ResultOut)
async def get_score_distribution(svc: ProfileService = Depends(get_profile_service)):
    return result_out(await svc.score_distribution())


@router.get("/diary", response_model=ResultOut)
async def get_diary(
    year: int | None = Query(None, ge=1970, le=9999),
    month: int | None = Query(None, ge=1, le=12),
    wait: bool = Query(True),
    svc: ProfileService = Depends(get_profile_service),
):
    now = datetime.now(svc.tz)
    y, m = year or now.year, month or now.month
    if not wait:
        return result_out(svc.diary_snapshot(y, m))
    return result_out(await svc.diary(y, m))


@router.get("/pending", response_model=ResultOut)
async def get_pending(svc: ProfileService = Depends(get_profile_service)):
    return result_out(await svc.pending())


@router.get("/history", response_model=ResultOut)
async def get_history(
    more: bool = Query(False, description="append the next page"),
    svc: ProfileService = Depends(get_profile_service),
):
    return paged_out(await svc.history(next_page=more))


@router.get("/bookmarks", response_model=ResultOut)
async def get_bookmarks(
    more: bool = Query(False, description="append the next page"),
    svc: BookmarksService = Depends(get_bookmarks_service),
):
    return paged_out(await svc.bookmarks_page(next_page=more))


@router.get("/bookmarks/grouped", response_model=ResultOut)
async def get_grouped_bookmarks(
    more: bool = Query(False, description="load one more page before grouping"),
    svc: BookmarksService = Depends(get_bookmarks_service),
):
    return result_out(await svc.grouped(next_page=more))
