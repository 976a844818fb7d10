from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional, List, Dict
from datetime import datetime
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.models.contest.submission import SubmissionStatus
from app.services.contest.store import ContestStore
from app.services.payment.payment_service import PaymentService
from app.utils.errors import Forbidden, NotFound, NotRegistered, DeadlinePassed


class SubmissionService:
    """Service for contest submission operations"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.submissions = db.submissions
        self.store = ContestStore(db)
        self.payment_service = PaymentService(db)

    async def get_submission_by_id(self, submission_id: str) -> Optional[Dict]:
        if not submission_id or not ObjectId.is_valid(submission_id):
            return None
        return await self.submissions.find_one({"_id": ObjectId(submission_id)})

    async def submit(self, contest_id: str, participant_email: str, link: str) -> Dict:
        """
        Create or update the participant's single submission for a contest.

        - Participant must have a paid registration
        - Contest deadline must not have passed
        - A repeat submission only replaces the link; status is preserved
        """
        participant_email = participant_email.strip().lower()

        contest = await self.store.get(contest_id)
        if not contest:
            raise NotFound("Contest not found")

        payment = await self.payment_service.get_payment(contest_id, participant_email)
        if not payment:
            raise NotRegistered()

        now = datetime.utcnow()
        if contest["deadline"] < now:
            raise DeadlinePassed()

        key = {"contestId": str(contest["_id"]), "participantEmail": participant_email}
        update = {
            "$set": {"submissionLink": link, "updatedAt": now},
            "$setOnInsert": {
                "participantName": payment.get("participantName"),
                "participantImage": payment.get("participantImage"),
                "status": SubmissionStatus.PENDING.value,
                "submittedAt": now
            }
        }

        try:
            submission = await self.submissions.find_one_and_update(
                key, update, upsert=True, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            # Concurrent first submission inserted the document, update it instead
            submission = await self.submissions.find_one_and_update(
                key, {"$set": update["$set"]}, return_document=ReturnDocument.AFTER
            )

        return submission

    async def get_for_contest(self, contest_id: str, actor: Dict) -> List[Dict]:
        """All submissions for a contest, newest first (contest creator only)"""
        contest = await self.store.get(contest_id)
        if not contest:
            raise NotFound("Contest not found")

        if contest.get("creator", {}).get("email") != actor.get("email"):
            raise Forbidden("Only the contest creator can view submissions")

        return await self.submissions.find(
            {"contestId": str(contest["_id"])}
        ).sort("submittedAt", -1).to_list(length=None)

    async def get_mine(self, contest_id: str, participant_email: str) -> Optional[Dict]:
        """The participant's own submission, or None when there is none"""
        return await self.submissions.find_one({
            "contestId": contest_id,
            "participantEmail": participant_email.strip().lower()
        })

    async def mark_results(self, contest_id: str, winner_submission_id: ObjectId) -> None:
        """Grade every submission of a contest against the chosen winner"""
        await self.submissions.update_many(
            {"contestId": contest_id, "_id": {"$ne": winner_submission_id}},
            {"$set": {"status": SubmissionStatus.NOT_SELECTED.value, "gradedAt": datetime.utcnow()}}
        )
        await self.submissions.update_one(
            {"_id": winner_submission_id},
            {"$set": {"status": SubmissionStatus.WINNER.value, "gradedAt": datetime.utcnow()}}
        )
