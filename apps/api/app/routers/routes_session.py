from fastapi import APIRouter, Depends

from app.deps.deps import get_sessions
from app.deps.supabase_client import get_current_user_id
from app.sessions import SessionRegistry

router = APIRouter(prefix="/session", tags=["session"])


@router.get("")
async def session_info(
    user_id: str = Depends(get_current_user_id),
    sessions: SessionRegistry = Depends(get_sessions),
):
    return {"user_id": user_id, "active": user_id in sessions}


@router.post("/logout")
async def logout(
    user_id: str = Depends(get_current_user_id),
    sessions: SessionRegistry = Depends(get_sessions),
):
    """Drop the user's cached views and stop their background re-checks."""
    return {"closed": await sessions.release(user_id)}
