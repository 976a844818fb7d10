from fastapi import APIRouter, Depends

from app.models.auth.user import UserRole
from app.models.contest.contest import DecisionRequest
from app.routes.auth.dependencies import require_role
from app.routes.contest.contest_routes import get_contest_service
from app.services.contest.contest import ContestService
from app.utils.response import success_response

router = APIRouter(prefix="/admin/contests", tags=["Contest Moderation"])


@router.get("")
async def list_all_contests(
    current_user: dict = Depends(require_role(UserRole.ADMIN)),
    contest_service: ContestService = Depends(get_contest_service)
):
    """Every contest regardless of status"""
    contests = await contest_service.list_all(current_user)
    return success_response(message="Contests retrieved successfully", data={"contests": contests})


@router.patch("/{contest_id}/decision")
async def decide_contest(
    contest_id: str,
    decision: DecisionRequest,
    current_user: dict = Depends(require_role(UserRole.ADMIN)),
    contest_service: ContestService = Depends(get_contest_service)
):
    """Approve or reject a pending contest"""
    contest = await contest_service.decide_contest(contest_id, decision.status, current_user)
    return success_response(message=f"Contest {decision.status.value}", data={"contest": contest})


@router.delete("/{contest_id}")
async def delete_contest(
    contest_id: str,
    current_user: dict = Depends(require_role(UserRole.ADMIN)),
    contest_service: ContestService = Depends(get_contest_service)
):
    """Delete a contest that has not been approved"""
    await contest_service.delete_contest(contest_id, current_user)
    return success_response(message="Contest deleted successfully")
