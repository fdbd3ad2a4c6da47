from __future__ import annotations

import json
import urllib.error
import urllib.request
from decimal import Decimal

from services.api.app.config import PesapalSettings, Settings
from services.api.app.services.payment_base import (
    GatewayAuthError,
    GatewayOrder,
    GatewaySubmitError,
)

# Pesapal requires a full billing block but we only collect a phone number. These are
# stand-ins until checkout captures the customer's name and email.
_PLACEHOLDER_BILLING = {
    "email_address": "orders@platter.invalid",
    "country_code": "UG",
    "first_name": "Platter",
    "middle_name": "",
    "last_name": "Customer",
    "line_1": "",
    "line_2": "",
    "city": "",
    "state": "",
    "postal_code": "",
    "zip_code": "",
}

_DESCRIPTION = "Payment for food delivery"


class PesapalGateway:
    """Pesapal API 3.0: bearer token, then SubmitOrderRequest."""

    vendor = "PESAPAL"

    def __init__(
        self,
        config: PesapalSettings,
        *,
        currency: str,
        callback_url: str,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._config = config
        self._currency = currency
        self._callback_url = callback_url
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "PesapalGateway":
        if settings.pesapal is None:
            raise ValueError("Pesapal credentials are not configured")
        return cls(
            settings.pesapal,
            currency=settings.currency,
            callback_url=settings.callback_url,
            timeout_seconds=settings.http_timeout_seconds,
        )

    def request_token(self) -> str:
        url = f"{self._config.api_url}/api/Auth/RequestToken"
        body = {
            "consumer_key": self._config.consumer_key,
            "consumer_secret": self._config.consumer_secret,
        }
        try:
            payload = _post_json(url, body, token=None, timeout=self._timeout_seconds)
        except RuntimeError as e:
            raise GatewayAuthError(f"Pesapal token generation failed: {e}") from e

        if not isinstance(payload, dict):
            raise GatewayAuthError(f"Unexpected Pesapal token response shape: {payload!r}")
        # Pesapal reports some failures with HTTP 200 and an error object.
        if payload.get("error"):
            raise GatewayAuthError(f"Pesapal token generation failed: {payload['error']!r}")

        token = payload.get("token")
        if not isinstance(token, str) or not token:
            raise GatewayAuthError(f"Unexpected Pesapal token response shape: {payload!r}")
        return token

    def submit_order(
        self,
        *,
        token: str,
        request_id: str,
        amount: Decimal,
        phone_number: str,
    ) -> GatewayOrder:
        url = f"{self._config.api_url}/api/Transactions/SubmitOrderRequest"
        body = {
            "id": request_id,
            "currency": self._currency,
            "amount": float(amount),
            "description": _DESCRIPTION,
            "callback_url": self._callback_url,
            "notification_id": self._config.notification_id,
            "branch": self._config.branch,
            "billing_address": {**_PLACEHOLDER_BILLING, "phone_number": phone_number},
        }
        try:
            payload = _post_json(url, body, token=token, timeout=self._timeout_seconds)
        except RuntimeError as e:
            raise GatewaySubmitError(f"Pesapal order creation failed: {e}") from e

        if not isinstance(payload, dict):
            raise GatewaySubmitError(f"Unexpected Pesapal order response shape: {payload!r}")
        if payload.get("error"):
            raise GatewaySubmitError(f"Pesapal order creation failed: {payload['error']!r}")

        tracking_id = payload.get("order_tracking_id")
        redirect_url = payload.get("redirect_url")
        if not tracking_id or not redirect_url:
            raise GatewaySubmitError(f"Unexpected Pesapal order response shape: {payload!r}")

        return GatewayOrder(redirect_url=str(redirect_url), order_tracking_id=str(tracking_id))


def _post_json(url: str, body: dict, *, token: str | None, timeout: float) -> dict:
    req = urllib.request.Request(url, method="POST")
    req.add_header("Content-Type", "application/json")
    req.add_header("Accept", "application/json")
    if token:
        req.add_header("Authorization", f"Bearer {token}")

    try:
        with urllib.request.urlopen(
            req, data=json.dumps(body).encode("utf-8"), timeout=timeout
        ) as resp:
            data = resp.read()
    except urllib.error.HTTPError as e:
        detail = e.read().decode("utf-8", errors="replace")
        raise RuntimeError(f"HTTP {e.code}: {detail}") from e
    except urllib.error.URLError as e:
        raise RuntimeError(f"Could not reach {url}: {e.reason}") from e
    # Read timeouts and dropped connections surface here, after urlopen has returned.
    except OSError as e:
        raise RuntimeError(f"Could not read response from {url}: {e}") from e

    try:
        raw = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise RuntimeError(f"Response is not UTF-8: {data[:200]!r}") from e

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Response is not JSON: {raw[:200]!r}") from e
