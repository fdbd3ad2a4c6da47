from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol


class PaymentGatewayError(Exception):
    """Base class for payment gateway adapter errors."""


class GatewayAuthError(PaymentGatewayError):
    pass


class GatewaySubmitError(PaymentGatewayError):
    pass


@dataclass(frozen=True, slots=True)
class GatewayOrder:
    redirect_url: str
    order_tracking_id: str


class PaymentGateway(Protocol):
    vendor: str

    def request_token(self) -> str: ...

    def submit_order(
        self,
        *,
        token: str,
        request_id: str,
        amount: Decimal,
        phone_number: str,
    ) -> GatewayOrder: ...
