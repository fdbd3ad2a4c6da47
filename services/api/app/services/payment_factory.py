from __future__ import annotations

from services.api.app.config import Settings
from services.api.app.services.payment_base import PaymentGateway
from services.api.app.services.payment_mock import MockPaymentGateway


def get_payment_gateway(settings: Settings) -> PaymentGateway:
    """Select a gateway from settings.

    Defaults to the mock gateway so tests and local dev never reach Pesapal unless explicitly
    configured otherwise.
    """

    if settings.payment_gateway == "mock":
        return MockPaymentGateway()

    if settings.payment_gateway == "pesapal":
        from services.api.app.services.payment_pesapal import PesapalGateway

        return PesapalGateway.from_settings(settings)

    raise ValueError(
        f"Unknown payment gateway {settings.payment_gateway!r}. Expected mock or pesapal."
    )
