import asyncio

import pytest

from app.models.contest.contest import ContestDecision
from app.services.contest.contest import ContestService
from app.services.payment.payment_service import PaymentService
from app.utils.errors import Conflict, InvalidState, NotFound, UpstreamFailure

from tests.conftest import contest_payload


async def start(db, gateway, contest_id, user, **kwargs):
    url = await PaymentService(db, gateway).start_checkout(contest_id, user, **kwargs)
    return url, gateway.created[-1]


class TestStartCheckout:

    async def test_line_item_uses_entry_fee(self, db, gateway, participant, approved_contest):
        url, session = await start(db, gateway, approved_contest, participant)

        assert url.startswith("https://checkout.example.com/pay/")
        assert session["line_item"].unit_amount == 1000
        assert session["line_item"].currency == "usd"
        assert session["customer_email"] == participant["email"]
        assert session["metadata"] == {
            "contestId": approved_contest,
            "participantEmail": participant["email"],
            "participantName": "Pat Player",
            "participantImage": "https://img.example.com/pat.png",
        }
        assert session["success_url"].endswith("/payment-success?session_id={CHECKOUT_SESSION_ID}")
        assert session["cancel_url"].endswith(f"/contest/{approved_contest}")

    async def test_mismatched_price_is_refused(self, db, gateway, participant, approved_contest):
        with pytest.raises(InvalidState):
            await start(db, gateway, approved_contest, participant, price=1)

        assert gateway.created == []

    async def test_matching_price_is_accepted(self, db, gateway, participant, approved_contest):
        await start(db, gateway, approved_contest, participant, price=10.0)

        assert len(gateway.created) == 1

    async def test_pending_contest_is_not_open(self, db, gateway, creator, participant):
        contest_id = await ContestService(db).create_contest(contest_payload(), creator)

        with pytest.raises(InvalidState):
            await start(db, gateway, contest_id, participant)

    async def test_rejected_contest_is_not_open(self, db, gateway, creator, admin, participant):
        service = ContestService(db)
        contest_id = await service.create_contest(contest_payload(), creator)
        await service.decide_contest(contest_id, ContestDecision.REJECTED, admin)

        with pytest.raises(InvalidState):
            await start(db, gateway, contest_id, participant)

    async def test_unknown_contest(self, db, gateway, participant):
        with pytest.raises(NotFound):
            await start(db, gateway, "5f43a1b2c3d4e5f6a7b8c9d0", participant)

    async def test_already_paid(self, db, gateway, participant, approved_contest, pay):
        await pay(approved_contest, participant)

        with pytest.raises(Conflict):
            await start(db, gateway, approved_contest, participant)

    async def test_gateway_failure(self, db, gateway, participant, approved_contest):
        gateway.fail_create = True

        with pytest.raises(UpstreamFailure):
            await start(db, gateway, approved_contest, participant)

    async def test_without_gateway(self, db, participant, approved_contest):
        with pytest.raises(UpstreamFailure):
            await PaymentService(db).start_checkout(approved_contest, participant)


class TestConfirmPayment:

    async def test_records_payment_and_counters(self, db, gateway, participant, approved_contest):
        _, session = await start(db, gateway, approved_contest, participant)
        transaction_id = gateway.complete(session["session_id"])

        result = await PaymentService(db, gateway).confirm_payment(session["session_id"])

        assert result["duplicate"] is False
        assert result["transactionId"] == transaction_id

        payment = await db.payments.find_one({"transactionId": transaction_id})
        assert payment["price"] == 10
        assert payment["status"] == "paid"
        assert payment["participantEmail"] == participant["email"]
        assert payment["creator"]["email"] == "creator@example.com"
        assert payment["name"] == "Coffee Shop Logo Sprint"

        contest = await ContestService(db).get_contest(approved_contest)
        assert contest["participantCount"] == 1
        user = await db.users.find_one({"email": participant["email"]})
        assert user["userActions"]["contestsParticipated"] == 1

    async def test_participant_count_goes_through_contest_lifecycle(
        self, db, gateway, participant, approved_contest, monkeypatch
    ):
        _, session = await start(db, gateway, approved_contest, participant)
        gateway.complete(session["session_id"])
        service = PaymentService(db, gateway)
        real_increment = service.contest_service.increment_participant_count
        incremented = []

        async def record_increment(contest_id):
            incremented.append(contest_id)
            return await real_increment(contest_id)

        monkeypatch.setattr(service.contest_service, "increment_participant_count", record_increment)

        await service.confirm_payment(session["session_id"])
        await service.confirm_payment(session["session_id"])

        assert incremented == [approved_contest]

    async def test_repeated_confirmation_records_once(self, db, gateway, participant, approved_contest):
        _, session = await start(db, gateway, approved_contest, participant)
        gateway.complete(session["session_id"])
        service = PaymentService(db, gateway)

        results = [await service.confirm_payment(session["session_id"]) for _ in range(4)]

        assert [r["duplicate"] for r in results] == [False, True, True, True]
        assert len({r["paymentId"] for r in results}) == 1
        assert await db.payments.count_documents({}) == 1
        contest = await ContestService(db).get_contest(approved_contest)
        assert contest["participantCount"] == 1

    async def test_concurrent_confirmations_record_once(self, db, gateway, participant, approved_contest):
        _, session = await start(db, gateway, approved_contest, participant)
        gateway.complete(session["session_id"])

        results = await asyncio.gather(*[
            PaymentService(db, gateway).confirm_payment(session["session_id"]) for _ in range(5)
        ])

        assert sum(1 for r in results if not r["duplicate"]) == 1
        assert await db.payments.count_documents({}) == 1
        contest = await ContestService(db).get_contest(approved_contest)
        assert contest["participantCount"] == 1
        user = await db.users.find_one({"email": participant["email"]})
        assert user["userActions"]["contestsParticipated"] == 1

    async def test_losing_insert_race_returns_recorded_payment(
        self, db, gateway, participant, approved_contest, monkeypatch
    ):
        _, session = await start(db, gateway, approved_contest, participant)
        gateway.complete(session["session_id"])
        first = await PaymentService(db, gateway).confirm_payment(session["session_id"])

        service = PaymentService(db, gateway)
        real_find_one = service.payments.find_one
        calls = []

        async def stale_find_one(*args, **kwargs):
            # First lookup happens before the other caller's insert is visible
            calls.append(args)
            if len(calls) == 1:
                return None
            return await real_find_one(*args, **kwargs)

        monkeypatch.setattr(service.payments, "find_one", stale_find_one)

        second = await service.confirm_payment(session["session_id"])

        assert second == {**first, "duplicate": True}
        assert await db.payments.count_documents({}) == 1
        contest = await ContestService(db).get_contest(approved_contest)
        assert contest["participantCount"] == 1

    async def test_incomplete_session(self, db, gateway, participant, approved_contest):
        _, session = await start(db, gateway, approved_contest, participant)

        with pytest.raises(InvalidState):
            await PaymentService(db, gateway).confirm_payment(session["session_id"])

        assert await db.payments.count_documents({}) == 0

    async def test_unknown_session(self, db, gateway):
        with pytest.raises(UpstreamFailure):
            await PaymentService(db, gateway).confirm_payment("cs_missing")

    async def test_contest_deleted_before_confirmation(self, db, gateway, participant, approved_contest):
        _, session = await start(db, gateway, approved_contest, participant)
        gateway.complete(session["session_id"])
        await db.contests.delete_many({})

        with pytest.raises(NotFound):
            await PaymentService(db, gateway).confirm_payment(session["session_id"])


async def test_list_mine_joins_live_contest_state(db, gateway, participant, approved_contest, pay):
    await pay(approved_contest, participant)
    service = PaymentService(db, gateway)

    assert await service.has_paid(approved_contest, participant["email"]) is True

    participated = await service.list_mine(participant["email"])

    assert len(participated) == 1
    assert participated[0]["contestAvailable"] is True
    assert participated[0]["contestStatus"] == "approved"
    assert participated[0]["winner"]["status"] == "pending"

    await db.contests.delete_many({})
    participated = await service.list_mine(participant["email"])
    assert participated[0]["contestAvailable"] is False
    assert participated[0]["deadline"] is None
