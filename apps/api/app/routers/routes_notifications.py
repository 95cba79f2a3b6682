from fastapi import APIRouter, Depends

from app.deps.deps_services import get_notifications_service
from app.schemas import ResultOut, result_out
from shelfie_notifications.notifications_service import NotificationsService
from shelfie_notifications.schemas import MarkReadIn

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=ResultOut)
async def list_notifications(svc: NotificationsService = Depends(get_notifications_service)):
    return result_out(await svc.notifications())


@router.get("/unread-count", response_model=ResultOut)
async def unread_count(svc: NotificationsService = Depends(get_notifications_service)):
    return result_out(await svc.unread_count())


@router.post("/read", status_code=204)
async def mark_read(req: MarkReadIn, svc: NotificationsService = Depends(get_notifications_service)):
    await svc.mark_read(req.ids)


@router.post("/read-all", status_code=204)
async def mark_all_read(svc: NotificationsService = Depends(get_notifications_service)):
    await svc.mark_all_read()
