import asyncio
import copy

import pytest

from app.models.contest.contest import ContestDecision
from app.services.contest.contest import ContestService
from app.services.contest.submission import SubmissionService
from app.services.contest.winner import WinnerService
from app.services.payment.payment_service import PaymentService
from app.utils.errors import AlreadyDeclared, Forbidden, NotFound

from tests.conftest import contest_payload


@pytest.fixture
async def entrants(db, make_user, approved_contest, pay):
    """Three paid participants, each with a submission"""
    submission_service = SubmissionService(db)
    submissions = []
    for name in ("ana", "ben", "cleo"):
        user = await make_user(f"{name}@example.com", name=name.title())
        await pay(approved_contest, user)
        submissions.append(await submission_service.submit(
            approved_contest, user["email"], f"https://drive.example.com/{name}"
        ))
    return submissions


async def test_declare_winner_grades_every_submission(db, creator, approved_contest, entrants):
    winning = entrants[1]

    contest = await WinnerService(db).declare_winner(str(winning["_id"]), creator)

    assert contest["winner"]["status"] == "declared"
    assert contest["winner"]["email"] == "ben@example.com"
    assert contest["winner"]["submissionId"] == str(winning["_id"])

    submissions = await db.submissions.find({"contestId": approved_contest}).to_list(length=None)
    statuses = {s["participantEmail"]: s["status"] for s in submissions}
    assert statuses == {
        "ana@example.com": "not_selected",
        "ben@example.com": "winner",
        "cleo@example.com": "not_selected",
    }


async def test_only_the_creator_declares(db, make_user, approved_contest, entrants):
    outsider = await make_user("outsider@example.com", "creator")

    with pytest.raises(Forbidden):
        await WinnerService(db).declare_winner(str(entrants[0]["_id"]), outsider)

    contest = await ContestService(db).get_contest(approved_contest)
    assert contest["winner"]["status"] == "pending"


async def test_unknown_submission(db, creator):
    with pytest.raises(NotFound):
        await WinnerService(db).declare_winner("5f43a1b2c3d4e5f6a7b8c9d0", creator)


async def test_second_declaration_is_refused(db, creator, approved_contest, entrants):
    service = WinnerService(db)
    await service.declare_winner(str(entrants[0]["_id"]), creator)

    with pytest.raises(AlreadyDeclared):
        await service.declare_winner(str(entrants[2]["_id"]), creator)

    contest = await ContestService(db).get_contest(approved_contest)
    assert contest["winner"]["email"] == "ana@example.com"
    creator_doc = await db.users.find_one({"email": creator["email"]})
    assert creator_doc["creatorActions"]["contestsCompleted"] == 1


async def test_concurrent_declarations_pick_one_winner(db, creator, approved_contest, entrants):
    results = await asyncio.gather(
        *[WinnerService(db).declare_winner(str(s["_id"]), creator) for s in entrants],
        return_exceptions=True
    )

    declared = [r for r in results if not isinstance(r, Exception)]
    refused = [r for r in results if isinstance(r, AlreadyDeclared)]
    assert len(declared) == 1
    assert len(refused) == 2

    assert await db.submissions.count_documents({"status": "winner"}) == 1
    assert await db.submissions.count_documents({"status": "not_selected"}) == 2


async def test_stale_read_loses_at_the_conditional_update(
    db, creator, approved_contest, entrants, monkeypatch
):
    service = WinnerService(db)
    stale = copy.deepcopy(await service.store.get(approved_contest))
    await WinnerService(db).declare_winner(str(entrants[0]["_id"]), creator)

    real_get = service.store.get

    async def get_stale(contest_id):
        # Contest read before the other declaration landed
        if str(contest_id) == approved_contest:
            return stale
        return await real_get(contest_id)

    monkeypatch.setattr(service.store, "get", get_stale)

    with pytest.raises(AlreadyDeclared):
        await service.declare_winner(str(entrants[1]["_id"]), creator)

    winner = await db.submissions.find_one({"status": "winner"})
    assert winner["participantEmail"] == "ana@example.com"
    ben = await db.users.find_one({"email": "ben@example.com"})
    assert ben["userActions"]["contestsWon"] == 0


async def test_full_contest_scenario(db, gateway, make_user):
    creator = await make_user("c@example.com", "creator", name="C")
    admin = await make_user("root@example.com", "admin")
    participant = await make_user("p@example.com", name="P")
    contests = ContestService(db)

    contest_id = await contests.create_contest(contest_payload(prizeMoney=100), creator)
    assert (await contests.get_contest(contest_id))["status"] == "pending"

    await contests.decide_contest(contest_id, ContestDecision.APPROVED, admin)
    assert (await db.users.find_one({"email": admin["email"]}))["adminActions"]["approved"] == 1

    payments = PaymentService(db, gateway)
    await payments.start_checkout(contest_id, participant)
    session_id = gateway.created[-1]["session_id"]
    gateway.complete(session_id)
    await payments.confirm_payment(session_id)
    assert (await contests.get_contest(contest_id))["participantCount"] == 1
    assert (await db.users.find_one({"email": "p@example.com"}))["userActions"]["contestsParticipated"] == 1

    submission = await SubmissionService(db).submit(contest_id, "p@example.com", "https://drive.example.com/L")
    assert submission["status"] == "pending"

    winners = WinnerService(db)
    contest = await winners.declare_winner(str(submission["_id"]), creator)
    assert contest["winner"]["status"] == "declared"
    assert contest["winner"]["email"] == "p@example.com"
    assert (await db.submissions.find_one({"_id": submission["_id"]}))["status"] == "winner"

    p = await db.users.find_one({"email": "p@example.com"})
    assert p["userActions"]["contestsWon"] == 1
    assert p["userActions"]["totalWinnings"] == 100
    c = await db.users.find_one({"email": "c@example.com"})
    assert c["creatorActions"]["contestsCompleted"] == 1
    assert c["creatorActions"]["totalPrizePaid"] == 100

    with pytest.raises(AlreadyDeclared):
        await winners.declare_winner(str(submission["_id"]), creator)

    won = await winners.list_winnings("p@example.com")
    assert [str(doc["_id"]) for doc in won] == [contest_id]
