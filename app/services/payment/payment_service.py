"""
Payment Service
Reconciles hosted checkout sessions into contest entry payments
"""
import os
from datetime import datetime
from typing import Optional, Dict, Any, List
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.models.contest.contest import ContestStatus
from app.models.payment.payment import PaymentStatus
from app.services.auth.role_service import RoleService
from app.services.contest.contest import ContestService
from app.services.contest.store import ContestStore
from app.services.payment.gateways.base import BasePaymentGateway, LineItem, SessionStatus
from app.utils.errors import (
    Conflict,
    InternalFailure,
    InvalidState,
    NotFound,
    UpstreamFailure
)

CLIENT_DOMAIN = os.getenv("CLIENT_DOMAIN", "http://localhost:5173")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd")


class PaymentService:
    """
    Service for contest entry payments.

    Checkout is two decoupled phases: start_checkout only talks to the
    gateway, confirm_payment records the result. confirm_payment may be
    called any number of times, in any order and concurrently for the
    same session; the unique index on payments.transactionId decides the
    single caller that records the payment and bumps the counters.
    """

    def __init__(self, db: AsyncIOMotorDatabase, gateway: Optional[BasePaymentGateway] = None):
        self.db = db
        self.payments = db.payments
        self.gateway = gateway
        self.store = ContestStore(db)
        self.contest_service = ContestService(db)
        self.role_service = RoleService(db)

    def _require_gateway(self) -> BasePaymentGateway:
        if self.gateway is None:
            raise UpstreamFailure("Payment gateway is not configured")
        return self.gateway

    @staticmethod
    def to_minor_units(amount: float) -> int:
        return int(round(float(amount) * 100))

    async def get_payment(self, contest_id: str, participant_email: str) -> Optional[Dict[str, Any]]:
        return await self.payments.find_one({
            "contestId": str(contest_id),
            "participantEmail": participant_email.strip().lower(),
            "status": PaymentStatus.PAID.value
        })

    async def has_paid(self, contest_id: str, participant_email: str) -> bool:
        return await self.get_payment(contest_id, participant_email) is not None

    async def start_checkout(
        self,
        contest_id: str,
        participant: Dict[str, Any],
        price: Optional[float] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        image: Optional[str] = None
    ) -> str:
        """
        Open a hosted checkout session for a contest entry.

        Args:
            contest_id: Contest being entered
            participant: {email, name, image} of the payer
            price: Optional client price, must equal the entry fee
            name/description/image: Optional product overrides

        Returns:
            Redirect URL of the hosted checkout page
        """
        gateway = self._require_gateway()

        contest = await self.store.get(contest_id)
        if not contest:
            raise NotFound("Contest not found")
        if contest["status"] != ContestStatus.APPROVED.value:
            raise InvalidState("Contest is not open for registration")
        if contest["deadline"] < datetime.utcnow():
            raise InvalidState("Contest registration has closed")

        entry_fee = contest["entryFee"]
        if price is not None and self.to_minor_units(price) != self.to_minor_units(entry_fee):
            raise InvalidState("Price does not match the contest entry fee")

        participant_email = participant["email"].strip().lower()
        if await self.has_paid(contest_id, participant_email):
            raise Conflict("You have already registered for this contest")

        contest_id = str(contest["_id"])
        line_item = LineItem(
            name=name or contest["name"],
            description=description or contest.get("description"),
            image=image or contest.get("image"),
            unit_amount=self.to_minor_units(entry_fee),
            currency=PAYMENT_CURRENCY
        )
        metadata = {
            "contestId": contest_id,
            "participantEmail": participant_email,
            "participantName": str(participant.get("name") or ""),
            "participantImage": str(participant.get("image") or ""),
        }

        result = await gateway.create_checkout_session(
            line_item=line_item,
            customer_email=participant_email,
            metadata=metadata,
            success_url=f"{CLIENT_DOMAIN}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{CLIENT_DOMAIN}/contest/{contest_id}"
        )

        if not result.success or not result.session_url:
            print(f"[ERROR] Checkout session creation failed: {result.error_message}")
            raise UpstreamFailure(result.error_message or "Failed to create checkout session")

        return result.session_url

    async def confirm_payment(self, session_id: str) -> Dict[str, Any]:
        """
        Record the payment for a completed checkout session, exactly once.

        Returns:
            {transactionId, paymentId, duplicate}
        """
        gateway = self._require_gateway()

        session = await gateway.retrieve_session(session_id)
        if not session.success:
            print(f"[ERROR] Session retrieval failed for {session_id}: {session.error_message}")
            raise UpstreamFailure(session.error_message or "Failed to retrieve checkout session")

        transaction_id = session.payment_intent_id
        metadata = session.metadata or {}

        if transaction_id:
            existing = await self.payments.find_one({"transactionId": transaction_id})
            if existing:
                print(f"[INFO] Payment {transaction_id} already recorded, skipping")
                return self._confirmation(existing, duplicate=True)

        if session.status != SessionStatus.COMPLETE:
            raise InvalidState("Payment has not been completed")

        if not transaction_id or session.amount_total is None or not metadata.get("participantEmail"):
            raise UpstreamFailure("Checkout session is missing payment details")

        contest = await self.store.get(metadata.get("contestId"))
        if not contest:
            raise NotFound("Contest not found")

        participant_email = metadata["participantEmail"].strip().lower()
        payment = {
            "contestId": str(contest["_id"]),
            "participantName": metadata.get("participantName"),
            "participantEmail": participant_email,
            "participantImage": metadata.get("participantImage"),
            "price": session.amount_total / 100,
            "transactionId": transaction_id,
            "sessionId": session.session_id or session_id,
            "status": PaymentStatus.PAID.value,
            "paidAt": datetime.utcnow(),
            "creator": contest.get("creator"),
            "name": contest.get("name"),
            "image": contest.get("image"),
        }

        try:
            result = await self.payments.insert_one(payment)
        except DuplicateKeyError:
            # Another confirmation won the race and owns the counter updates
            existing = await self.payments.find_one({"transactionId": transaction_id})
            print(f"[INFO] Concurrent confirmation for {transaction_id}, returning recorded payment")
            return self._confirmation(existing, duplicate=True)
        except PyMongoError as e:
            print(f"[ERROR] Failed to record payment {transaction_id}: {e}")
            raise InternalFailure("Failed to record payment")

        payment["_id"] = result.inserted_id
        await self._apply_counters(payment)

        print(f"[OK] Recorded payment {transaction_id} for {participant_email} on contest {payment['contestId']}")
        return self._confirmation(payment, duplicate=False)

    async def _apply_counters(self, payment: Dict[str, Any]) -> None:
        """Counter side effects owned by the caller that inserted the payment"""
        try:
            await self.contest_service.increment_participant_count(payment["contestId"])
            await self.role_service.increment_counters(
                payment["participantEmail"], {"userActions.contestsParticipated": 1}
            )
        except PyMongoError as e:
            print(f"[ERROR] Counter update failed for payment {payment['transactionId']}: {e}")
            raise InternalFailure("Payment recorded but counters could not be updated")

    @staticmethod
    def _confirmation(payment: Dict[str, Any], duplicate: bool) -> Dict[str, Any]:
        return {
            "transactionId": payment["transactionId"],
            "paymentId": str(payment["_id"]),
            "duplicate": duplicate
        }

    async def list_mine(self, participant_email: str) -> List[Dict[str, Any]]:
        """
        The participant's payments joined with the live contest state.
        Deadline, status and winner come from the contest at read time.
        """
        payments = await self.payments.find(
            {"participantEmail": participant_email.strip().lower()}
        ).sort("paidAt", -1).to_list(length=None)

        contests = await self.store.get_many([p["contestId"] for p in payments])

        participated = []
        for payment in payments:
            contest = contests.get(payment["contestId"])
            participated.append({
                **payment,
                "deadline": contest.get("deadline") if contest else None,
                "contestStatus": contest.get("status") if contest else None,
                "winner": contest.get("winner") if contest else None,
                "contestAvailable": contest is not None
            })

        return participated
