from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.database import get_database
from app.models.contest.submission import SubmissionCreate
from app.routes.auth.dependencies import get_current_user
from app.services.contest.submission import SubmissionService
from app.services.contest.winner import WinnerService
from app.utils.response import success_response

router = APIRouter(tags=["Submissions"])


def get_submission_service(db: AsyncIOMotorDatabase = Depends(get_database)) -> SubmissionService:
    return SubmissionService(db)


def get_winner_service(db: AsyncIOMotorDatabase = Depends(get_database)) -> WinnerService:
    return WinnerService(db)


@router.post("/contest/{contest_id}/submit")
async def submit_task(
    contest_id: str,
    submission_data: SubmissionCreate,
    current_user: dict = Depends(get_current_user),
    submission_service: SubmissionService = Depends(get_submission_service)
):
    """
    Submit (or replace) the task link for a contest.

    - Must have paid the entry fee
    - Contest deadline must not have passed
    """
    submission = await submission_service.submit(
        contest_id, current_user["email"], submission_data.submissionLink
    )
    return success_response(message="Task submitted successfully", data={"submission": submission})


@router.get("/contest/{contest_id}/submissions")
async def list_contest_submissions(
    contest_id: str,
    current_user: dict = Depends(get_current_user),
    submission_service: SubmissionService = Depends(get_submission_service)
):
    """All submissions for a contest (contest creator only)"""
    submissions = await submission_service.get_for_contest(contest_id, current_user)
    return success_response(
        message="Submissions retrieved successfully",
        data={"submissions": submissions, "total": len(submissions)}
    )


@router.get("/contest/{contest_id}/my-submission")
async def get_my_submission(
    contest_id: str,
    current_user: dict = Depends(get_current_user),
    submission_service: SubmissionService = Depends(get_submission_service)
):
    """The caller's own submission; `submission` is null when there is none"""
    submission = await submission_service.get_mine(contest_id, current_user["email"])
    return success_response(message="Submission retrieved successfully", data={"submission": submission})


@router.patch("/submissions/{submission_id}/declare-winner")
async def declare_winner(
    submission_id: str,
    current_user: dict = Depends(get_current_user),
    winner_service: WinnerService = Depends(get_winner_service)
):
    """Declare this submission the contest winner (contest creator only, once)"""
    contest = await winner_service.declare_winner(submission_id, current_user)
    return success_response(message="Winner declared successfully", data={"contest": contest})


@router.get("/my-winnings")
async def list_my_winnings(
    current_user: dict = Depends(get_current_user),
    winner_service: WinnerService = Depends(get_winner_service)
):
    """Contests won by the authenticated user"""
    contests = await winner_service.list_winnings(current_user["email"])
    return success_response(message="Winnings retrieved successfully", data={"contests": contests})
