from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import uuid4

from services.api.app.services.order_errors import (
    PaymentAuthError,
    PaymentSubmitError,
    UnsupportedPaymentMethodError,
)
from services.api.app.services.payment_base import PaymentGateway, PaymentGatewayError

logger = logging.getLogger(__name__)

AWAITING_PAYMENT = "Awaiting Payment"


@dataclass(frozen=True, slots=True)
class PaymentDispatch:
    method: str
    initial_status: str
    tracking_id: str | None = None
    redirect_url: str | None = None
    request_id: str | None = None

    @property
    def is_online(self) -> bool:
        return self.method == "online"


def dispatch_payment(
    gateway: PaymentGateway,
    *,
    payment_method: str,
    requested_status: str,
    amount: Decimal,
    phone_number: str,
) -> PaymentDispatch:
    """Decide the order's initial status and, for online payment, open it at the gateway.

    Runs before anything is written, so a failure here needs no cleanup. No retries.
    """

    method = (payment_method or "").strip().lower()

    if method == "cash":
        logger.info("Cash payment, no gateway call")
        return PaymentDispatch(method=method, initial_status=requested_status)

    if method != "online":
        raise UnsupportedPaymentMethodError(payment_method)

    try:
        token = gateway.request_token()
    except PaymentGatewayError as e:
        raise PaymentAuthError(f"Failed to generate {gateway.vendor} authentication token") from e

    request_id = str(uuid4())
    try:
        submitted = gateway.submit_order(
            token=token,
            request_id=request_id,
            amount=amount,
            phone_number=phone_number,
        )
    except PaymentGatewayError as e:
        raise PaymentSubmitError(f"Failed to create payment order with {gateway.vendor}") from e

    logger.info(
        "Opened %s payment request=%s tracking=%s amount=%s",
        gateway.vendor,
        request_id,
        submitted.order_tracking_id,
        amount,
    )
    return PaymentDispatch(
        method=method,
        initial_status=AWAITING_PAYMENT,
        tracking_id=submitted.order_tracking_id,
        redirect_url=submitted.redirect_url,
        request_id=request_id,
    )
