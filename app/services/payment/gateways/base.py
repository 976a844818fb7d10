"""
Base Payment Gateway
Abstract class defining the interface for hosted-checkout payment gateways
"""
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum


class SessionStatus(str, Enum):
    """Standard checkout session status across all gateways"""
    OPEN = "open"
    COMPLETE = "complete"
    EXPIRED = "expired"


@dataclass
class LineItem:
    """Single product line shown on the hosted checkout page"""
    name: str
    unit_amount: int  # minor currency units
    currency: str = "usd"
    description: Optional[str] = None
    image: Optional[str] = None
    quantity: int = 1


@dataclass
class CheckoutSessionResult:
    """Result of creating a hosted checkout session"""
    success: bool
    session_id: Optional[str] = None
    session_url: Optional[str] = None
    error_message: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None


@dataclass
class SessionStatusResult:
    """Result of retrieving a checkout session"""
    success: bool
    session_id: Optional[str] = None
    status: Optional[SessionStatus] = None
    amount_total: Optional[int] = None  # minor currency units
    payment_intent_id: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    error_message: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None


class BasePaymentGateway(ABC):
    """
    Abstract base class for payment gateways.
    All payment gateways must implement these methods.
    """

    gateway_id: str = "base"
    gateway_name: str = "Base Gateway"

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize gateway with configuration.

        Args:
            config: Gateway configuration including API keys, endpoints, etc.
        """
        self.config = config
        self._validate_config()

    @abstractmethod
    def _validate_config(self):
        """Validate required configuration parameters"""
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        line_item: LineItem,
        customer_email: str,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str
    ) -> CheckoutSessionResult:
        """
        Open a hosted checkout session.

        Args:
            line_item: Product being paid for
            customer_email: Payer's email, prefilled on the checkout page
            metadata: Opaque key/value pairs echoed back on retrieval
            success_url: Redirect after a completed payment
            cancel_url: Redirect after the payer abandons checkout

        Returns:
            CheckoutSessionResult with the redirect URL
        """
        pass

    @abstractmethod
    async def retrieve_session(self, session_id: str) -> SessionStatusResult:
        """
        Get the current state of a checkout session.

        Args:
            session_id: Gateway's session ID

        Returns:
            SessionStatusResult with status, amount and metadata
        """
        pass

    async def close(self):
        """Release network resources"""
        return None

    def get_api_url(self, endpoint: str) -> str:
        """Get full API URL for endpoint"""
        base_url = self.config.get("api_url", "")
        return f"{base_url}/{endpoint.lstrip('/')}"
