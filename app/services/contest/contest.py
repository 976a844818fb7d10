import os
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional, List, Dict
from datetime import datetime

from app.models.auth.user import UserRole
from app.models.contest.contest import (
    ContestCreate,
    ContestUpdate,
    ContestDecision,
    ContestStatus,
    EDITABLE_FIELDS,
    pending_winner
)
from app.services.auth.role_service import RoleService, require_admin
from app.services.contest.store import ContestStore
from app.utils.errors import Forbidden, NotFound, InvalidState, AlreadyProcessed

POPULAR_CONTESTS_LIMIT = int(os.getenv("POPULAR_CONTESTS_LIMIT", "6"))


class ContestService:
    """
    Service for contest lifecycle operations.

    Every state-dependent write is a conditional update whose filter
    repeats the state check, so concurrent admin/creator actions on the
    same contest cannot both succeed.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.store = ContestStore(db)
        self.role_service = RoleService(db)

    @staticmethod
    def _is_owner(contest: Dict, actor: Dict) -> bool:
        return contest.get("creator", {}).get("email") == actor.get("email")

    async def get_contest(self, contest_id: str) -> Dict:
        contest = await self.store.get(contest_id)
        if not contest:
            raise NotFound("Contest not found")
        return contest

    async def create_contest(self, contest_data: ContestCreate, actor: Dict) -> str:
        """Create a new contest (creators only). Returns the new contest id."""
        if actor.get("role") != UserRole.CREATOR:
            raise Forbidden("Only creators can create contests")

        if contest_data.deadline <= datetime.utcnow():
            raise InvalidState("Deadline must be in the future")

        now = datetime.utcnow()
        contest = {
            **contest_data.model_dump(),
            "creator": {
                "email": actor["email"],
                "name": actor.get("name"),
                "image": actor.get("image")
            },
            "status": ContestStatus.PENDING.value,  # Always starts as pending
            "participantCount": 0,
            "winner": pending_winner(),
            "createdAt": now,
            "updatedAt": now
        }

        contest_id = await self.store.insert(contest)

        await self.role_service.increment_counters(
            actor["email"], {"creatorActions.contestsCreated": 1}
        )

        print(f"[INFO] Contest {contest_id} created by {actor['email']}")
        return str(contest_id)

    def _check_modifiable(self, contest: Dict, actor: Dict) -> None:
        """Ownership first, then status"""
        if not self._is_owner(contest, actor):
            raise Forbidden("Only the contest creator can modify this contest")
        if contest["status"] != ContestStatus.PENDING.value:
            raise InvalidState(f"Contest is already {contest['status']} and can no longer be modified")

    async def _explain_failed_write(self, contest_id: str, actor: Dict) -> None:
        """Raise the error explaining why a pending-only write matched nothing"""
        contest = await self.get_contest(contest_id)
        self._check_modifiable(contest, actor)
        raise InvalidState("Contest changed while it was being modified")

    async def update_contest(self, contest_id: str, update_data: ContestUpdate, actor: Dict) -> Dict:
        """Replace the editable fields (only owner, only in PENDING status)"""
        if update_data.deadline <= datetime.utcnow():
            # A bad payload from a non-owner or on a decided contest still gets that error
            self._check_modifiable(await self.get_contest(contest_id), actor)
            raise InvalidState("Deadline must be in the future")

        changes = update_data.model_dump(include=set(EDITABLE_FIELDS))
        changes["updatedAt"] = datetime.utcnow()

        contest = await self.store.update_if(
            contest_id,
            {"creator.email": actor.get("email"), "status": ContestStatus.PENDING.value},
            {"$set": changes}
        )
        if not contest:
            await self._explain_failed_write(contest_id, actor)

        return contest

    async def decide_contest(self, contest_id: str, outcome: ContestDecision, actor: Dict) -> Dict:
        """Approve or reject a pending contest (admins only)"""
        require_admin(actor)
        outcome = ContestDecision(outcome)

        contest = await self.store.update_if(
            contest_id,
            {"status": ContestStatus.PENDING.value},
            {"$set": {
                "status": outcome.value,
                "decidedBy": actor["email"],
                "decidedAt": datetime.utcnow()
            }}
        )
        if not contest:
            existing = await self.get_contest(contest_id)
            raise AlreadyProcessed(f"Contest is already {existing['status']}")

        await self.role_service.increment_counters(
            actor["email"], {f"adminActions.{outcome.value}": 1}
        )

        print(f"[OK] Contest {contest_id} {outcome.value} by {actor['email']}")
        return contest

    async def delete_contest(self, contest_id: str, actor: Dict) -> bool:
        """
        Delete a contest.

        - Admin: any contest that is not approved
        - Creator: own contest while it is still pending
        """
        if actor.get("role") == UserRole.ADMIN:
            deleted = await self.store.delete_if(
                contest_id, {"status": {"$ne": ContestStatus.APPROVED.value}}
            )
            if not deleted:
                await self.get_contest(contest_id)
                raise InvalidState("Approved contests cannot be deleted")

            await self.role_service.increment_counters(
                actor["email"], {"adminActions.deleted": 1}
            )
            print(f"[OK] Contest {contest_id} deleted by admin {actor['email']}")
            return True

        deleted = await self.store.delete_if(
            contest_id,
            {"creator.email": actor.get("email"), "status": ContestStatus.PENDING.value}
        )
        if not deleted:
            await self._explain_failed_write(contest_id, actor)

        return True

    async def list_approved(self) -> List[Dict]:
        return await self.store.find(
            {"status": ContestStatus.APPROVED.value},
            sort=[("createdAt", -1)]
        )

    async def list_popular(self, limit: Optional[int] = None) -> List[Dict]:
        """Approved contests by participant count, bounded to one page"""
        limit = min(limit or POPULAR_CONTESTS_LIMIT, POPULAR_CONTESTS_LIMIT)
        return await self.store.find(
            {"status": ContestStatus.APPROVED.value},
            sort=[("participantCount", -1), ("createdAt", -1)],
            limit=limit
        )

    async def list_by_creator(self, email: str) -> List[Dict]:
        return await self.store.find(
            {"creator.email": (email or "").strip().lower()},
            sort=[("createdAt", -1)]
        )

    async def list_all(self, actor: Dict) -> List[Dict]:
        require_admin(actor)
        return await self.store.find({}, sort=[("createdAt", -1)])

    async def increment_participant_count(self, contest_id: str) -> bool:
        """Called by the payment reconciler once per recorded payment"""
        return await self.store.increment_participant_count(contest_id)
