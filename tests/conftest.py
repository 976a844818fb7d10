import asyncio
import uuid
from datetime import datetime, timedelta

import pytest
from mongomock_motor import AsyncMongoMockClient

from app.database import ensure_indexes
from app.models.auth.user import UserCreate, UserRole
from app.models.contest.contest import ContestCreate, ContestDecision
from app.services.auth.identity import BaseIdentityVerifier
from app.services.auth.role_service import RoleService
from app.services.contest.contest import ContestService
from app.services.payment.gateways.base import (
    BasePaymentGateway,
    CheckoutSessionResult,
    SessionStatus,
    SessionStatusResult
)
from app.services.payment.payment_service import PaymentService
from app.utils.errors import Unauthenticated


class FakeIdentityVerifier(BaseIdentityVerifier):
    """Accepts tokens of the form "token:<email>" """

    async def verify(self, token: str) -> str:
        if not token.startswith("token:"):
            raise Unauthenticated()
        return token[len("token:"):].lower()


class FakeGateway(BasePaymentGateway):
    """In-memory hosted checkout"""

    gateway_id = "fake"

    def __init__(self):
        super().__init__({"api_url": "https://checkout.example.com"})
        self.sessions = {}
        self.created = []
        self.retrievals = 0
        self.fail_create = False

    def _validate_config(self):
        pass

    async def create_checkout_session(self, line_item, customer_email, metadata, success_url, cancel_url):
        if self.fail_create:
            return CheckoutSessionResult(success=False, error_message="card network down")

        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append({
            "session_id": session_id,
            "line_item": line_item,
            "customer_email": customer_email,
            "metadata": dict(metadata),
            "success_url": success_url,
            "cancel_url": cancel_url,
        })
        self.sessions[session_id] = SessionStatusResult(
            success=True,
            session_id=session_id,
            status=SessionStatus.OPEN,
            amount_total=line_item.unit_amount,
            metadata=dict(metadata)
        )
        return CheckoutSessionResult(
            success=True,
            session_id=session_id,
            session_url=f"https://checkout.example.com/pay/{session_id}"
        )

    def complete(self, session_id: str, payment_intent_id: str = None) -> str:
        session = self.sessions[session_id]
        session.status = SessionStatus.COMPLETE
        session.payment_intent_id = payment_intent_id or f"pi_{session_id}"
        return session.payment_intent_id

    async def retrieve_session(self, session_id: str) -> SessionStatusResult:
        # Yield so concurrent confirmations interleave
        await asyncio.sleep(0)
        self.retrievals += 1
        if session_id not in self.sessions:
            return SessionStatusResult(
                success=False,
                session_id=session_id,
                error_message="No such checkout session"
            )
        return self.sessions[session_id]


@pytest.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client[f"contests_test_{uuid.uuid4().hex[:8]}"]
    await ensure_indexes(database)
    return database


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def make_user(db):
    async def _make_user(email, role=UserRole.USER, name=None, image=None):
        user, _ = await RoleService(db).register(UserCreate(email=email, name=name, image=image))
        if role != UserRole.USER:
            await db.users.update_one(
                {"email": user["email"]},
                {"$set": {"role": UserRole(role).value}}
            )
        return await db.users.find_one({"email": user["email"]})

    return _make_user


def contest_payload(**overrides) -> ContestCreate:
    data = {
        "name": "Coffee Shop Logo Sprint",
        "description": "Design a logo for a neighbourhood coffee shop",
        "image": "https://img.example.com/logo.png",
        "contestType": "design",
        "entryFee": 10,
        "prizeMoney": 100,
        "instructions": "Share a public link to your design",
        "deadline": datetime.utcnow() + timedelta(days=7),
    }
    data.update(overrides)
    return ContestCreate(**data)


@pytest.fixture
async def creator(make_user):
    return await make_user("creator@example.com", UserRole.CREATOR, name="Casey Creator")


@pytest.fixture
async def admin(make_user):
    return await make_user("admin@example.com", UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
async def participant(make_user):
    return await make_user(
        "player@example.com", name="Pat Player", image="https://img.example.com/pat.png"
    )


@pytest.fixture
async def approved_contest(db, creator, admin):
    """Approved contest id created by `creator`"""
    contest_service = ContestService(db)
    contest_id = await contest_service.create_contest(contest_payload(), creator)
    await contest_service.decide_contest(contest_id, ContestDecision.APPROVED, admin)
    return contest_id


@pytest.fixture
def pay(db, gateway):
    """Run a full checkout + confirmation for a participant"""
    async def _pay(contest_id, user):
        payment_service = PaymentService(db, gateway)
        await payment_service.start_checkout(contest_id, user)
        session_id = gateway.created[-1]["session_id"]
        gateway.complete(session_id)
        result = await payment_service.confirm_payment(session_id)
        return session_id, result

    return _pay
