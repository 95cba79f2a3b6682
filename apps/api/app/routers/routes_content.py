from fastapi import APIRouter, Depends, HTTPException, status

from app.deps.deps_services import (
    get_bookmarks_service,
    get_content_service,
    get_public_content_service,
)
from app.schemas import PinOrderRequest, ResultOut, ToggleOut, result_out
from shelfie_core.types import to_content_type
from shelfie_library.bookmarks_service import BookmarksService
from shelfie_library.content_service import ContentService
from shelfie_library.schemas import (
    BookmarkToggle,
    ContentStatusRecord,
    ContentStatusUpsert,
    PinItemCreate,
    PinnedItem,
    RatingCreate,
    RatingRecord,
    ReportCreate,
)

router = APIRouter(prefix="/content", tags=["content"])


def content_type_param(content_type: str) -> str:
    try:
        return to_content_type(content_type).value
    except ValueError:
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY, f"unknown content type: {content_type}"
        )


# ---- Ratings ----
@router.post("/ratings", response_model=RatingRecord, status_code=201)
async def create_rating(req: RatingCreate, svc: ContentService = Depends(get_content_service)):
    return await svc.rate(req)


# ---- Status ----
@router.put("/status", response_model=ContentStatusRecord)
async def upsert_status(
    req: ContentStatusUpsert, svc: ContentService = Depends(get_content_service)
):
    return await svc.set_status(req)


# ---- Pins (declare BEFORE `/{content_type}/{content_id}` routes) ----
@router.get("/pins", response_model=ResultOut)
async def list_pins(svc: ContentService = Depends(get_content_service)):
    return result_out(await svc.pinned_items())


@router.post("/pins", response_model=PinnedItem, status_code=201)
async def pin_item(req: PinItemCreate, svc: ContentService = Depends(get_content_service)):
    return await svc.pin(req)


@router.put("/pins/order", status_code=204)
async def reorder_pins(req: PinOrderRequest, svc: ContentService = Depends(get_content_service)):
    await svc.reorder_pins(req.positions)


@router.delete("/pins/{pinned_id}", status_code=204)
async def unpin_item(pinned_id: str, svc: ContentService = Depends(get_content_service)):
    await svc.unpin(pinned_id)


# ---- Bookmarks ----
@router.post("/bookmarks/toggle", response_model=ToggleOut)
async def toggle_bookmark(
    req: BookmarkToggle, svc: BookmarksService = Depends(get_bookmarks_service)
):
    return ToggleOut(active=await svc.toggle(req))


# ---- Trending ----
@router.get("/trending", response_model=ResultOut)
async def global_trending(svc: ContentService = Depends(get_public_content_service)):
    return result_out(await svc.global_trending())


# ---- Reports ----
@router.post("/reports", status_code=201)
async def report_item(req: ReportCreate, svc: ContentService = Depends(get_content_service)):
    return {"id": await svc.report(req)}


@router.get("/reports/{item_id}", response_model=ResultOut)
async def has_reported(item_id: str, svc: ContentService = Depends(get_content_service)):
    return result_out(await svc.has_reported(item_id))


# ---- Per-content views ----
@router.get("/{content_type}/{content_id}/community-score", response_model=ResultOut)
async def community_score(
    content_id: str,
    content_type: str = Depends(content_type_param),
    svc: ContentService = Depends(get_public_content_service),
):
    return result_out(await svc.community_score(content_type, content_id))


@router.get("/{content_type}/{content_id}/status", response_model=ResultOut)
async def content_status(
    content_id: str,
    content_type: str = Depends(content_type_param),
    svc: ContentService = Depends(get_content_service),
):
    return result_out(await svc.status(content_type, content_id))


@router.get("/{content_type}/{content_id}/pin", response_model=ResultOut)
async def content_pin(
    content_id: str,
    content_type: str = Depends(content_type_param),
    svc: ContentService = Depends(get_content_service),
):
    return result_out(await svc.pinned_item(content_type, content_id))


@router.get("/{content_type}/{content_id}/bookmark", response_model=ResultOut)
async def content_bookmark(
    content_id: str,
    content_type: str = Depends(content_type_param),
    svc: BookmarksService = Depends(get_bookmarks_service),
):
    return result_out(await svc.is_bookmarked(content_type, content_id))
