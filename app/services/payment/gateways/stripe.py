"""
Stripe Payment Gateway Implementation
Implements the BasePaymentGateway for Stripe Checkout over the REST API
"""
import os
import httpx
from typing import Dict, Any, Optional
from urllib.parse import quote
from dotenv import load_dotenv

from app.services.payment.gateways.base import (
    BasePaymentGateway,
    CheckoutSessionResult,
    LineItem,
    SessionStatus,
    SessionStatusResult
)

load_dotenv()


class StripeGateway(BasePaymentGateway):
    """
    Stripe Checkout Implementation

    Features:
    - Hosted checkout session creation
    - Session retrieval (status, amount, payment intent, metadata)
    """

    gateway_id = "stripe"
    gateway_name = "Stripe Checkout"

    API_URL = "https://api.stripe.com/v1"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize Stripe gateway"""
        # Always load base config from environment (contains credentials)
        env_config = self._load_config_from_env()

        # Merge with provided config (override non-credential settings)
        if config is not None:
            env_config.update({k: v for k, v in config.items() if v is not None})

        super().__init__(env_config)

        self.secret_key = self.config["secret_key"]
        self.client = httpx.AsyncClient(
            timeout=self.config["timeout"],
            auth=(self.secret_key, "")
        )

    def _load_config_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        secret_key = os.getenv("STRIPE_SECRET_KEY")

        if not secret_key:
            print("[WARN] STRIPE_SECRET_KEY not found in environment")

        return {
            "secret_key": secret_key,
            "api_url": os.getenv("STRIPE_API_URL", self.API_URL),
            "timeout": float(os.getenv("PAYMENT_TIMEOUT", "30")),
        }

    def _validate_config(self):
        """Validate required Stripe configuration"""
        if not self.config.get("secret_key"):
            raise ValueError("STRIPE_SECRET_KEY is required")

    @staticmethod
    def _build_session_form(
        line_item: LineItem,
        customer_email: str,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str
    ) -> Dict[str, Any]:
        """Flatten a session request into Stripe's bracketed form encoding"""
        prefix = "line_items[0]"
        form = {
            "mode": "payment",
            "customer_email": customer_email,
            "success_url": success_url,
            "cancel_url": cancel_url,
            f"{prefix}[quantity]": str(line_item.quantity),
            f"{prefix}[price_data][currency]": line_item.currency,
            f"{prefix}[price_data][unit_amount]": str(line_item.unit_amount),
            f"{prefix}[price_data][product_data][name]": line_item.name,
        }

        if line_item.description:
            form[f"{prefix}[price_data][product_data][description]"] = line_item.description
        if line_item.image:
            form[f"{prefix}[price_data][product_data][images][0]"] = line_item.image

        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)

        return form

    @staticmethod
    def _map_status(stripe_status: Optional[str]) -> SessionStatus:
        """Map Stripe session status to standard SessionStatus"""
        status_map = {
            "open": SessionStatus.OPEN,
            "complete": SessionStatus.COMPLETE,
            "expired": SessionStatus.EXPIRED,
        }
        return status_map.get((stripe_status or "").lower(), SessionStatus.OPEN)

    async def create_checkout_session(
        self,
        line_item: LineItem,
        customer_email: str,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str
    ) -> CheckoutSessionResult:
        """Create a Stripe Checkout session"""
        try:
            form = self._build_session_form(
                line_item, customer_email, metadata, success_url, cancel_url
            )
            response = await self.client.post(
                self.get_api_url("/checkout/sessions"),
                data=form
            )
            response_data = response.json()

            if response.status_code in [200, 201] and response_data.get("url"):
                return CheckoutSessionResult(
                    success=True,
                    session_id=response_data.get("id"),
                    session_url=response_data.get("url"),
                    raw_response=response_data
                )

            error_msg = response_data.get("error", {}).get("message", "Unknown error")
            return CheckoutSessionResult(
                success=False,
                error_message=error_msg,
                raw_response=response_data
            )

        except (httpx.HTTPError, ValueError) as e:
            return CheckoutSessionResult(success=False, error_message=str(e))

    async def retrieve_session(self, session_id: str) -> SessionStatusResult:
        """Retrieve a Stripe Checkout session"""
        try:
            # Session ids arrive from unauthenticated callers, keep them a single path segment
            response = await self.client.get(
                self.get_api_url(f"/checkout/sessions/{quote(session_id, safe='')}")
            )
            response_data = response.json()

            if response.status_code != 200:
                error_msg = response_data.get("error", {}).get("message", "Failed to retrieve session")
                return SessionStatusResult(
                    success=False,
                    session_id=session_id,
                    error_message=error_msg,
                    raw_response=response_data
                )

            payment_intent = response_data.get("payment_intent")
            # Expanded payment intents come back as objects
            if isinstance(payment_intent, dict):
                payment_intent = payment_intent.get("id")

            return SessionStatusResult(
                success=True,
                session_id=response_data.get("id", session_id),
                status=self._map_status(response_data.get("status")),
                amount_total=response_data.get("amount_total"),
                payment_intent_id=payment_intent,
                metadata=response_data.get("metadata") or {},
                raw_response=response_data
            )

        except (httpx.HTTPError, ValueError) as e:
            return SessionStatusResult(
                success=False,
                session_id=session_id,
                error_message=str(e)
            )

    async def close(self):
        await self.client.aclose()
