from fastapi import APIRouter, Depends, Query
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.database import get_database
from app.models.auth.user import UserRole
from app.models.contest.contest import ContestCreate, ContestUpdate
from app.routes.auth.dependencies import get_current_user, require_role
from app.services.contest.contest import ContestService
from app.utils.response import success_response

router = APIRouter(tags=["Contests"])


def get_contest_service(db: AsyncIOMotorDatabase = Depends(get_database)) -> ContestService:
    return ContestService(db)


@router.get("/all-contests")
async def list_approved_contests(contest_service: ContestService = Depends(get_contest_service)):
    """Approved contests, newest first. Public endpoint."""
    contests = await contest_service.list_approved()
    return success_response(message="Contests retrieved successfully", data={"contests": contests})


@router.get("/popular-contests")
async def list_popular_contests(
    limit: Optional[int] = Query(None, ge=1),
    contest_service: ContestService = Depends(get_contest_service)
):
    """Approved contests with the most participants. Public endpoint."""
    contests = await contest_service.list_popular(limit)
    return success_response(message="Contests retrieved successfully", data={"contests": contests})


@router.get("/contest/{contest_id}")
async def get_contest(contest_id: str, contest_service: ContestService = Depends(get_contest_service)):
    contest = await contest_service.get_contest(contest_id)
    return success_response(message="Contest retrieved successfully", data={"contest": contest})


@router.post("/contest")
async def create_contest(
    contest_data: ContestCreate,
    current_user: dict = Depends(require_role(UserRole.CREATOR)),
    contest_service: ContestService = Depends(get_contest_service)
):
    """
    Create a new contest (creators only).

    - Contest starts in PENDING status until an admin decides
    - Deadline must be in the future
    """
    contest_id = await contest_service.create_contest(contest_data, current_user)
    return success_response(
        message="Contest created successfully",
        data={"insertedId": contest_id},
        status_code=201
    )


@router.put("/contest/{contest_id}")
async def edit_contest(
    contest_id: str,
    update_data: ContestUpdate,
    current_user: dict = Depends(get_current_user),
    contest_service: ContestService = Depends(get_contest_service)
):
    """Edit own contest while it is still pending"""
    contest = await contest_service.update_contest(contest_id, update_data, current_user)
    return success_response(message="Contest updated successfully", data={"contest": contest})


@router.get("/my-contests")
async def list_my_contests(
    current_user: dict = Depends(require_role(UserRole.CREATOR)),
    contest_service: ContestService = Depends(get_contest_service)
):
    """Contests created by the authenticated creator"""
    contests = await contest_service.list_by_creator(current_user["email"])
    return success_response(message="Contests retrieved successfully", data={"contests": contests})


@router.delete("/my-contests/{contest_id}")
async def delete_my_contest(
    contest_id: str,
    current_user: dict = Depends(require_role(UserRole.CREATOR)),
    contest_service: ContestService = Depends(get_contest_service)
):
    """Delete own contest while it is still pending"""
    await contest_service.delete_contest(contest_id, current_user)
    return success_response(message="Contest deleted successfully")
