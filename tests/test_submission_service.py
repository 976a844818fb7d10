from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from app.services.contest.submission import SubmissionService
from app.utils.errors import DeadlinePassed, Forbidden, NotFound, NotRegistered


async def expire(db, contest_id):
    await db.contests.update_one(
        {"_id": ObjectId(contest_id)},
        {"$set": {"deadline": datetime.utcnow() - timedelta(seconds=1)}}
    )


async def test_submit_requires_payment(db, participant, approved_contest):
    with pytest.raises(NotRegistered):
        await SubmissionService(db).submit(approved_contest, participant["email"], "https://drive/x")

    assert await db.submissions.count_documents({}) == 0


async def test_submit_unknown_contest(db, participant):
    with pytest.raises(NotFound):
        await SubmissionService(db).submit("5f43a1b2c3d4e5f6a7b8c9d0", participant["email"], "https://x/y")


async def test_first_submission_copies_participant(db, participant, approved_contest, pay):
    await pay(approved_contest, participant)

    submission = await SubmissionService(db).submit(
        approved_contest, participant["email"], "https://drive.example.com/one"
    )

    assert submission["status"] == "pending"
    assert submission["participantName"] == "Pat Player"
    assert submission["participantImage"] == "https://img.example.com/pat.png"
    assert submission["submissionLink"] == "https://drive.example.com/one"


async def test_resubmission_replaces_link_only(db, participant, approved_contest, pay):
    await pay(approved_contest, participant)
    service = SubmissionService(db)

    first = await service.submit(approved_contest, participant["email"], "https://drive.example.com/one")
    second = await service.submit(approved_contest, participant["email"], "https://drive.example.com/two")

    assert second["_id"] == first["_id"]
    assert second["submissionLink"] == "https://drive.example.com/two"
    assert second["submittedAt"] == first["submittedAt"]
    assert await db.submissions.count_documents({"contestId": approved_contest}) == 1


async def test_submit_after_deadline(db, participant, approved_contest, pay):
    await pay(approved_contest, participant)
    await expire(db, approved_contest)

    with pytest.raises(DeadlinePassed):
        await SubmissionService(db).submit(approved_contest, participant["email"], "https://drive/late")


async def test_get_mine_without_submission(db, participant, approved_contest):
    assert await SubmissionService(db).get_mine(approved_contest, participant["email"]) is None


async def test_only_creator_lists_submissions(db, creator, participant, approved_contest, pay):
    await pay(approved_contest, participant)
    service = SubmissionService(db)
    await service.submit(approved_contest, participant["email"], "https://drive.example.com/one")

    with pytest.raises(Forbidden):
        await service.get_for_contest(approved_contest, participant)

    submissions = await service.get_for_contest(approved_contest, creator)
    assert [s["participantEmail"] for s in submissions] == [participant["email"]]
