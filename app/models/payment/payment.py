"""
Payment Models
Contest entry payments recorded from checkout session confirmations
"""
from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class PaymentStatus(str, Enum):
    """Recorded payment status"""
    PAID = "paid"


class CheckoutRequest(BaseModel):
    """
    Start a hosted checkout for a contest entry.

    Product details default to the contest's own; a supplied price must
    match the contest entry fee.
    """
    contestId: str
    price: Optional[float] = Field(None, gt=0)
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None


class ConfirmPaymentRequest(BaseModel):
    """Payment-success callback payload"""
    sessionId: str = Field(..., min_length=1)
