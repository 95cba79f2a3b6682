from fastapi import APIRouter, Depends, Query

from app.deps.deps_services import get_challenges_service
from app.schemas import ResultOut, result_out
from shelfie_challenges.challenges_service import ChallengesService
from shelfie_challenges.schemas import Challenge, ChallengeCreate

router = APIRouter(prefix="/challenges", tags=["challenges"])


@router.get("", response_model=ResultOut)
async def list_challenges(
    year: int | None = Query(None, ge=1970, le=9999),
    svc: ChallengesService = Depends(get_challenges_service),
):
    return result_out(await svc.challenges(year))


@router.get("/overview", response_model=ResultOut)
async def challenges_overview(
    year: int | None = Query(None, ge=1970, le=9999),
    svc: ChallengesService = Depends(get_challenges_service),
):
    return result_out(await svc.overview(year))


@router.post("", response_model=Challenge, status_code=201)
async def create_challenge(
    req: ChallengeCreate, svc: ChallengesService = Depends(get_challenges_service)
):
    return await svc.create(req)


@router.delete("/{challenge_id}", status_code=204)
async def delete_challenge(
    challenge_id: str, svc: ChallengesService = Depends(get_challenges_service)
):
    await svc.delete(challenge_id)


@router.post("/{challenge_id}/celebrated", status_code=204)
async def mark_celebrated(
    challenge_id: str, svc: ChallengesService = Depends(get_challenges_service)
):
    await svc.mark_celebrated(challenge_id)
