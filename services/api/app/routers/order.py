from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from packages.shared.schemas.envelope_v1 import ErrorCodeV1, FailureEnvelopeV1, SuccessEnvelopeV1
from services.api.app.config import Settings
from services.api.app.db.deps import get_db, get_settings
from services.api.app.db.models import Order
from services.api.app.models.order import (
    OrderDetail,
    OrderItemAddonOut,
    OrderItemOptionOut,
    OrderItemOut,
    OrderOut,
    OrderRequest,
)
from services.api.app.services.catalog import SqlCatalogReader
from services.api.app.services.notifications import SqlNotificationSink
from services.api.app.services.order_errors import OrderFlowError
from services.api.app.services.order_saga import SqlOrderWriter
from services.api.app.services.order_service import create_order
from services.api.app.services.payment_factory import get_payment_gateway
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def envelope_response(
    status_code: int,
    *,
    error: str,
    code: ErrorCodeV1,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body = FailureEnvelopeV1(error=error, code=code, details=details or {})
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=CORS_HEADERS,
    )


def _error_response(e: Exception) -> JSONResponse:
    if isinstance(e, OrderFlowError):
        logger.warning("Order rejected (%s): %s", e.code.value, e)
        return envelope_response(e.status_code, error=str(e), code=e.code, details=e.details())

    logger.exception("Unexpected error processing order")
    return envelope_response(500, error="Internal Server Error", code=ErrorCodeV1.INTERNAL_ERROR)


def _order_out(order: Order) -> OrderOut:
    return OrderOut(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        tracking_id=order.tracking_id,
        total_amount=order.total_amount,
        vat=order.vat,
        total_amount_vat=order.total_amount_vat,
        currency=order.currency,
        phone_number=order.phone_number,
        delivery_address=order.delivery_address,
        delivery_method=order.delivery_method,
        delivery_person_id=order.delivery_person_id,
        delivery_latitude=order.delivery_latitude,
        delivery_longitude=order.delivery_longitude,
        order_note=order.order_note,
        order_items=order.order_items,
        created_at=order.created_at.isoformat(),
    )


def _order_detail(order: Order) -> OrderDetail:
    items = [
        OrderItemOut(
            id=i.id,
            menu_item_id=i.menu_item_id,
            item_name=i.item_name,
            quantity=i.quantity,
            base_price=i.base_price,
            addon_total=i.addon_total,
            options_total=i.options_total,
            total_item_price=i.total_item_price,
            subtotal=i.subtotal,
            vat=i.vat,
            special_instructions=i.special_instructions,
            is_gluten_free=i.is_gluten_free,
            is_vegetarian=i.is_vegetarian,
            is_vegan=i.is_vegan,
            requires_special_preparation=i.requires_special_preparation,
            addons=[
                OrderItemAddonOut(
                    id=a.id,
                    addon_id=a.addon_id,
                    quantity=a.quantity,
                    addon_price=a.addon_price,
                )
                for a in i.addons
            ],
            options=[
                OrderItemOptionOut(
                    id=o.id,
                    menu_option_id=o.menu_option_id,
                    option_name=o.option_name,
                    selected_value=o.selected_value,
                    quantity=o.quantity,
                    option_price_adjustment=o.option_price_adjustment,
                )
                for o in i.options
            ],
        )
        for i in order.items
    ]
    return OrderDetail(**_order_out(order).model_dump(), items=items)


@router.options("/v1/orders")
@router.options("/process-payment")
def preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/v1/orders")
def submit_order(
    payload: OrderRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    return _submit(payload, db, settings, legacy=False)


@router.post("/process-payment")
def submit_order_legacy(
    payload: OrderRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    return _submit(payload, db, settings, legacy=True)


def _submit(
    payload: OrderRequest, db: Session, settings: Settings, *, legacy: bool
) -> JSONResponse:
    try:
        gateway = get_payment_gateway(settings)
    except ValueError as e:
        logger.error("Payment gateway misconfigured: %s", e)
        return envelope_response(500, error=str(e), code=ErrorCodeV1.INTERNAL_ERROR)

    try:
        result = create_order(
            payload,
            settings=settings,
            catalog=SqlCatalogReader(db),
            gateway=gateway,
            writer=SqlOrderWriter(db, atomic=settings.atomic_order_writes),
            notifier=SqlNotificationSink(db),
        )
    except Exception as e:
        return _error_response(e)

    body = SuccessEnvelopeV1(
        data={
            "order": _order_out(result.order).model_dump(mode="json"),
            "payment": result.payment_out().model_dump(mode="json", by_alias=legacy),
        }
    )
    return JSONResponse(content=body.model_dump(mode="json"), headers=CORS_HEADERS)


@router.get("/v1/orders/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db)) -> JSONResponse:
    order = db.get(Order, order_id)
    if order is None:
        return envelope_response(404, error="Order not found", code=ErrorCodeV1.NOT_FOUND)

    body = SuccessEnvelopeV1(data={"order": _order_detail(order).model_dump(mode="json")})
    return JSONResponse(content=body.model_dump(mode="json"), headers=CORS_HEADERS)
