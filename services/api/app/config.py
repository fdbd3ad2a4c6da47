from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "y"}


def _default_db_url() -> str:
    # Local-only default. Production must provide DATABASE_URL explicitly.
    return "sqlite+pysqlite:///.local/platter.db"


@dataclass(frozen=True, slots=True)
class PesapalSettings:
    api_url: str
    consumer_key: str
    consumer_secret: str
    notification_id: str
    branch: str


@dataclass(frozen=True, slots=True)
class Settings:
    """Process-wide configuration.

    Built once at startup and handed to the components that need it. Nothing below the
    router layer reads the environment.
    """

    database_url: str
    db_auto_create: bool
    log_level: str
    vat_rate: Decimal
    currency: str
    atomic_order_writes: bool
    payment_gateway: str
    callback_url: str
    http_timeout_seconds: float
    pesapal: PesapalSettings | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        problems: list[str] = []

        raw_vat = os.getenv("PLATTER_VAT_RATE", "0.18").strip()
        try:
            vat_rate = Decimal(raw_vat)
        except InvalidOperation:
            problems.append(f"PLATTER_VAT_RATE={raw_vat!r} is not a number")
            vat_rate = Decimal("0")
        else:
            if not vat_rate.is_finite() or not Decimal("0") <= vat_rate < Decimal("1"):
                problems.append(f"PLATTER_VAT_RATE={raw_vat!r} must be in [0, 1)")

        raw_timeout = os.getenv("PLATTER_HTTP_TIMEOUT_SECONDS", "30").strip()
        try:
            http_timeout_seconds = float(raw_timeout)
        except ValueError:
            problems.append(f"PLATTER_HTTP_TIMEOUT_SECONDS={raw_timeout!r} is not a number")
            http_timeout_seconds = 0.0

        payment_gateway = os.getenv("PLATTER_PAYMENT_GATEWAY", "mock").strip().lower()
        if payment_gateway not in {"mock", "pesapal"}:
            problems.append(
                f"Unknown PLATTER_PAYMENT_GATEWAY={payment_gateway!r}. Expected mock or pesapal."
            )

        callback_url = os.getenv("PLATTER_PAYMENT_CALLBACK_URL", "").strip()

        pesapal: PesapalSettings | None = None
        if payment_gateway == "pesapal":
            required = {
                "PESAPAL_API_URL": os.getenv("PESAPAL_API_URL", "").strip().rstrip("/"),
                "PESAPAL_CONSUMER_KEY": os.getenv("PESAPAL_CONSUMER_KEY", "").strip(),
                "PESAPAL_CONSUMER_SECRET": os.getenv("PESAPAL_CONSUMER_SECRET", "").strip(),
                "PESAPAL_NOTIFICATION_ID": os.getenv("PESAPAL_NOTIFICATION_ID", "").strip(),
                "PLATTER_PAYMENT_CALLBACK_URL": callback_url,
            }
            missing = [name for name, value in required.items() if not value]
            if missing:
                problems.append(
                    "Missing required environment variables for PLATTER_PAYMENT_GATEWAY=pesapal: "
                    + ", ".join(missing)
                )
            pesapal = PesapalSettings(
                api_url=required["PESAPAL_API_URL"],
                consumer_key=required["PESAPAL_CONSUMER_KEY"],
                consumer_secret=required["PESAPAL_CONSUMER_SECRET"],
                notification_id=required["PESAPAL_NOTIFICATION_ID"],
                branch=os.getenv("PESAPAL_BRANCH", "").strip(),
            )

        if problems:
            raise ValueError("Invalid configuration: " + "; ".join(problems))

        return cls(
            database_url=os.getenv("DATABASE_URL", _default_db_url()),
            db_auto_create=_parse_bool(os.getenv("PLATTER_DB_AUTO_CREATE", "true")),
            log_level=os.getenv("PLATTER_LOG_LEVEL", "INFO").strip().upper(),
            vat_rate=vat_rate,
            currency=os.getenv("PLATTER_CURRENCY", "UGX").strip().upper(),
            atomic_order_writes=_parse_bool(os.getenv("PLATTER_ATOMIC_ORDER_WRITES", "true")),
            payment_gateway=payment_gateway,
            callback_url=callback_url,
            http_timeout_seconds=http_timeout_seconds,
            pesapal=pesapal,
        )
