"""
Payment Gateway Factory
Creates payment gateway instances by identifier
"""
import os
from typing import Dict, Any, Optional, Type

from app.services.payment.gateways.base import BasePaymentGateway
from app.services.payment.gateways.stripe import StripeGateway


class PaymentGatewayFactory:
    """
    Factory for creating payment gateway instances.
    Instances are owned by the caller (the app lifespan), not cached here.
    """

    # Registry of available gateways
    _gateways: Dict[str, Type[BasePaymentGateway]] = {
        "stripe": StripeGateway,
    }

    @classmethod
    def get_available_gateways(cls) -> list:
        """Get list of available gateway IDs"""
        return list(cls._gateways.keys())

    @classmethod
    def create_gateway(
        cls,
        gateway_id: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None
    ) -> BasePaymentGateway:
        """
        Create a payment gateway instance.

        Args:
            gateway_id: Gateway identifier, defaults to PAYMENT_GATEWAY or "stripe"
            config: Optional configuration override

        Returns:
            Payment gateway instance

        Raises:
            ValueError: If gateway is not registered
        """
        gateway_id = gateway_id or os.getenv("PAYMENT_GATEWAY", "stripe")

        if gateway_id not in cls._gateways:
            raise ValueError(f"Unknown payment gateway: {gateway_id}. Available: {list(cls._gateways.keys())}")

        return cls._gateways[gateway_id](config)
