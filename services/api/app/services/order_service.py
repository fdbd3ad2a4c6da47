from __future__ import annotations

import logging
from dataclasses import dataclass

from services.api.app.config import Settings
from services.api.app.db.models import Order
from services.api.app.models.order import (
    CashPaymentOut,
    OnlinePaymentOut,
    OrderRequest,
    ReconciledLineItem,
)
from services.api.app.services.catalog import CatalogReader, resolve_catalog
from services.api.app.services.notifications import NotificationSink
from services.api.app.services.order_errors import OrderValidationError
from services.api.app.services.order_saga import OrderDraft, OrderWriter, persist_order
from services.api.app.services.payment_base import PaymentGateway
from services.api.app.services.payment_dispatch import PaymentDispatch, dispatch_payment
from services.api.app.services.pricing import compute_order_totals, reconcile_line_items

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OrderResult:
    order: Order
    items: list[ReconciledLineItem]
    payment: PaymentDispatch

    def payment_out(self) -> OnlinePaymentOut | CashPaymentOut:
        if self.payment.is_online:
            assert self.payment.redirect_url is not None
            assert self.payment.tracking_id is not None
            return OnlinePaymentOut(
                payment_url=self.payment.redirect_url,
                tracking_id=self.payment.tracking_id,
            )
        return CashPaymentOut()


def validate_order_request(payload: OrderRequest) -> None:
    missing: list[str] = []
    if not payload.order_items:
        missing.append("order_items")
    for name in ("delivery_address", "phone_number", "user_id"):
        value = getattr(payload, name)
        if value is None or not value.strip():
            missing.append(name)
    if missing:
        raise OrderValidationError(missing)


def create_order(
    payload: OrderRequest,
    *,
    settings: Settings,
    catalog: CatalogReader,
    gateway: PaymentGateway,
    writer: OrderWriter,
    notifier: NotificationSink,
) -> OrderResult:
    """Re-price a submitted order from the catalog, settle payment routing, then persist it.

    Client prices and totals are ignored. Every step either succeeds or raises an
    `OrderFlowError`; nothing is written until pricing and payment dispatch have succeeded.
    """

    validate_order_request(payload)

    resolved = resolve_catalog(catalog, payload.order_items)
    items = reconcile_line_items(payload.order_items, resolved)
    totals = compute_order_totals(items, settings.vat_rate)

    payment = dispatch_payment(
        gateway,
        payment_method=payload.payment_method,
        requested_status=payload.status,
        amount=totals.total_amount_vat,
        phone_number=payload.phone_number or "",
    )

    location = payload.delivery_location
    draft = OrderDraft(
        user_id=payload.user_id or "",
        phone_number=payload.phone_number or "",
        delivery_address=payload.delivery_address or "",
        payment_method=payload.payment_method,
        currency=settings.currency,
        delivery_method=payload.delivery_method,
        delivery_person_id=payload.delivery_person_id,
        order_note=payload.order_note,
        delivery_location=location.model_dump() if location is not None else None,
        delivery_latitude=payload.delivery_latitude,
        delivery_longitude=payload.delivery_longitude,
    )

    order = persist_order(
        writer,
        notifier,
        draft=draft,
        items=items,
        totals=totals,
        payment=payment,
        vat_rate=settings.vat_rate,
    )

    logger.info(
        "Order %s placed: %d items total=%s vat=%s method=%s",
        order.id,
        len(items),
        totals.total_amount_vat,
        totals.vat,
        payment.method,
    )
    return OrderResult(order=order, items=items, payment=payment)
