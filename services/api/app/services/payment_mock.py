from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from services.api.app.services.payment_base import GatewayOrder


class MockPaymentGateway:
    vendor = "PAYMENT_MOCK"

    def __init__(self, *, base_url: str = "https://pay.platter.invalid/mock") -> None:
        self._base_url = base_url.rstrip("/")

    def request_token(self) -> str:
        return "mock-token"

    def submit_order(
        self,
        *,
        token: str,
        request_id: str,
        amount: Decimal,
        phone_number: str,
    ) -> GatewayOrder:
        del token, amount, phone_number

        tracking_id = f"mock_{uuid4().hex[:12]}"
        return GatewayOrder(
            redirect_url=f"{self._base_url}/{tracking_id}?ref={request_id}",
            order_tracking_id=tracking_id,
        )
