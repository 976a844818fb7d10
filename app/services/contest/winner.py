from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List, Dict
from datetime import datetime

from app.models.contest.contest import WinnerStatus
from app.services.auth.role_service import RoleService
from app.services.contest.store import ContestStore
from app.services.contest.submission import SubmissionService
from app.utils.errors import Forbidden, NotFound, AlreadyDeclared


class WinnerService:
    """
    Service for declaring a contest's single winner.

    Flow:
    1. Load submission and its contest
    2. Verify the actor is the contest creator
    3. ATOMIC: flip winner.status pending -> declared (fails if already declared)
    4. Grade sibling submissions
    5. Update winner and creator counters
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.store = ContestStore(db)
        self.submission_service = SubmissionService(db)
        self.role_service = RoleService(db)

    async def declare_winner(self, submission_id: str, actor: Dict) -> Dict:
        submission = await self.submission_service.get_submission_by_id(submission_id)
        if not submission:
            raise NotFound("Submission not found")

        contest = await self.store.get(submission["contestId"])
        if not contest:
            raise NotFound("Contest not found")

        creator_email = contest.get("creator", {}).get("email")
        if creator_email != actor.get("email"):
            raise Forbidden("Only the contest creator can declare a winner")

        if contest.get("winner", {}).get("status") != WinnerStatus.PENDING.value:
            raise AlreadyDeclared()

        winner = {
            "status": WinnerStatus.DECLARED.value,
            "name": submission.get("participantName"),
            "email": submission["participantEmail"],
            "image": submission.get("participantImage"),
            "submissionId": str(submission["_id"]),
            "declaredAt": datetime.utcnow()
        }

        # The status check is repeated in the filter, only one declaration can land
        contest = await self.store.update_if(
            submission["contestId"],
            {"winner.status": WinnerStatus.PENDING.value},
            {"$set": {"winner": winner}}
        )
        if not contest:
            raise AlreadyDeclared()

        await self.submission_service.mark_results(submission["contestId"], submission["_id"])

        prize = contest.get("prizeMoney", 0)
        await self.role_service.increment_counters(
            winner["email"],
            {"userActions.contestsWon": 1, "userActions.totalWinnings": prize}
        )
        await self.role_service.increment_counters(
            creator_email,
            {"creatorActions.contestsCompleted": 1, "creatorActions.totalPrizePaid": prize}
        )

        print(f"[OK] {winner['email']} declared winner of contest {submission['contestId']}")
        return contest

    async def list_winnings(self, email: str) -> List[Dict]:
        """Contests the participant has won, latest declaration first"""
        return await self.store.find(
            {"winner.status": WinnerStatus.DECLARED.value, "winner.email": email.strip().lower()},
            sort=[("winner.declaredAt", -1)]
        )
