"""
Payment Routes
API endpoints for contest entry payments
"""
from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.database import get_database
from app.models.payment.payment import CheckoutRequest, ConfirmPaymentRequest
from app.routes.auth.dependencies import get_current_user, get_payment_gateway
from app.services.payment.gateways.base import BasePaymentGateway
from app.services.payment.payment_service import PaymentService
from app.utils.response import success_response

router = APIRouter(tags=["Payments"])


def get_payment_service(
    db: AsyncIOMotorDatabase = Depends(get_database),
    gateway: BasePaymentGateway = Depends(get_payment_gateway)
) -> PaymentService:
    return PaymentService(db, gateway)


@router.post("/create-checkout-session")
async def start_checkout(
    checkout: CheckoutRequest,
    current_user: dict = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """
    Open a hosted checkout session for a contest entry.

    Security:
    - Payer identity comes from the verified credential
    - Price is the contest entry fee, a mismatching client price is refused
    """
    url = await payment_service.start_checkout(
        contest_id=checkout.contestId,
        participant={
            "email": current_user["email"],
            "name": current_user.get("name"),
            "image": current_user.get("image")
        },
        price=checkout.price,
        name=checkout.name,
        description=checkout.description,
        image=checkout.image
    )
    return success_response(message="Checkout session created", data={"url": url})


@router.post("/payment-success")
async def confirm_payment(
    confirmation: ConfirmPaymentRequest,
    payment_service: PaymentService = Depends(get_payment_service)
):
    """
    Record a completed checkout session.

    Safe to call repeatedly for the same session: later calls return the
    already recorded payment with `duplicate: true`.
    """
    result = await payment_service.confirm_payment(confirmation.sessionId)
    message = "Payment already recorded" if result["duplicate"] else "Payment recorded successfully"
    return success_response(message=message, data=result)


@router.get("/payments/check/{contest_id}")
async def check_has_paid(
    contest_id: str,
    current_user: dict = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """Whether the caller has paid the entry fee for a contest"""
    paid = await payment_service.has_paid(contest_id, current_user["email"])
    return success_response(message="Payment status retrieved", data={"paid": paid})


@router.get("/my-participated")
async def list_my_participated(
    current_user: dict = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """Contests the caller paid for, with live deadline and status"""
    participated = await payment_service.list_mine(current_user["email"])
    return success_response(message="Participated contests retrieved", data={"contests": participated})
