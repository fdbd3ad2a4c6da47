from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from services.api.app.db.models import Order, OrderItem, OrderItemAddon, OrderItemOption
from services.api.app.models.order import OrderTotals, ReconciledLineItem
from services.api.app.services.notifications import NotificationSink, order_placed_notification
from services.api.app.services.order_errors import (
    OrderAddonsCreateError,
    OrderCreateError,
    OrderItemsCreateError,
    OrderOptionsCreateError,
)
from services.api.app.services.payment_dispatch import PaymentDispatch
from services.api.app.services.pricing import vat_for
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class OrderWriter(Protocol):
    """Write side of the order aggregate, one call per saga step.

    `delete_order` is the only compensation and must remove the order's children as well.
    `complete` is called once after the last step succeeds.
    """

    def insert_order(self, values: dict[str, Any]) -> Order: ...

    def insert_order_items(self, rows: list[dict[str, Any]]) -> list[tuple[int, int]]: ...

    def insert_order_item_addons(self, rows: list[dict[str, Any]]) -> None: ...

    def insert_order_item_options(self, rows: list[dict[str, Any]]) -> None: ...

    def delete_order(self, order_id: int) -> None: ...

    def complete(self) -> None: ...


class SqlOrderWriter:
    """SQLAlchemy order writer.

    With `atomic=True` every step is flushed into one transaction that `complete` commits,
    and compensation is a rollback. With `atomic=False` each step commits on its own and
    compensation deletes the order row, relying on the cascade to its children.
    """

    def __init__(self, db: Session, *, atomic: bool = True) -> None:
        self._db = db
        self._atomic = atomic

    def _finish_step(self) -> None:
        try:
            if self._atomic:
                self._db.flush()
            else:
                self._db.commit()
        except Exception:
            self._db.rollback()
            raise

    def insert_order(self, values: dict[str, Any]) -> Order:
        order = Order(**values)
        self._db.add(order)
        self._finish_step()
        return order

    def insert_order_items(self, rows: list[dict[str, Any]]) -> list[tuple[int, int]]:
        items = [OrderItem(**row) for row in rows]
        self._db.add_all(items)
        self._finish_step()
        return [(item.menu_item_id, item.id) for item in items]

    def insert_order_item_addons(self, rows: list[dict[str, Any]]) -> None:
        self._db.add_all([OrderItemAddon(**row) for row in rows])
        self._finish_step()

    def insert_order_item_options(self, rows: list[dict[str, Any]]) -> None:
        self._db.add_all([OrderItemOption(**row) for row in rows])
        self._finish_step()

    def delete_order(self, order_id: int) -> None:
        if self._atomic:
            self._db.rollback()
            return

        self._db.rollback()
        order = self._db.get(Order, order_id)
        if order is not None:
            self._db.delete(order)
            self._db.commit()

    def complete(self) -> None:
        self._db.commit()


@dataclass(frozen=True, slots=True)
class OrderDraft:
    """Everything the order row needs besides the line items."""

    user_id: str
    phone_number: str
    delivery_address: str
    payment_method: str
    currency: str
    delivery_method: str | None = None
    delivery_person_id: int | None = None
    order_note: str | None = None
    delivery_location: dict | None = None
    delivery_latitude: float | None = None
    delivery_longitude: float | None = None


def _delivery_point_wkt(draft: OrderDraft) -> str | None:
    if draft.delivery_longitude and draft.delivery_latitude:
        return f"POINT({draft.delivery_longitude} {draft.delivery_latitude})"
    return None


def _order_values(
    draft: OrderDraft,
    items: list[ReconciledLineItem],
    totals: OrderTotals,
    payment: PaymentDispatch,
) -> dict[str, Any]:
    return {
        "user_id": draft.user_id,
        "order_items": [item.model_dump(mode="json") for item in items],
        "total_amount": totals.total_amount,
        "vat": totals.vat,
        "total_amount_vat": totals.total_amount_vat,
        "currency": draft.currency,
        "status": payment.initial_status,
        "payment_status": payment.initial_status,
        "payment_method": draft.payment_method,
        "tracking_id": payment.tracking_id,
        "phone_number": draft.phone_number,
        "delivery_address": draft.delivery_address,
        "delivery_method": draft.delivery_method,
        "delivery_person_id": draft.delivery_person_id,
        "delivery_location": draft.delivery_location,
        "delivery_latitude": draft.delivery_latitude,
        "delivery_longitude": draft.delivery_longitude,
        "delivery_point_wkt": _delivery_point_wkt(draft),
        "order_note": draft.order_note,
    }


def _order_item_row(order_id: int, item: ReconciledLineItem, vat_rate: Decimal) -> dict[str, Any]:
    return {
        "order_id": order_id,
        "menu_item_id": item.menu_item_id,
        "item_name": item.name,
        "quantity": item.quantity,
        "base_price": item.base_price,
        "addon_total": item.addon_total,
        "options_total": item.options_total,
        "total_item_price": item.unit_price,
        "subtotal": item.subtotal,
        # Rounded per line; the sum may differ from the order VAT.
        "vat": vat_for(item.subtotal, vat_rate),
        "special_instructions": item.special_instructions,
        "is_gluten_free": item.is_gluten_free,
        "is_vegetarian": item.is_vegetarian,
        "is_vegan": item.is_vegan,
        "requires_special_preparation": item.requires_special_preparation,
    }


def _link_order_items(pairs: list[tuple[int, int]]) -> dict[int, int]:
    # Keyed by catalog id: two lines for the same menu item collapse onto the last row, and
    # every addon/option of both lines attaches to it. Known limitation, logged only.
    mapping: dict[int, int] = {}
    for menu_item_id, order_item_id in pairs:
        if menu_item_id in mapping:
            logger.warning(
                "Menu item %s appears on several lines; addons and options link to item %s",
                menu_item_id,
                order_item_id,
            )
        mapping[menu_item_id] = order_item_id
    return mapping


def _compensate(writer: OrderWriter, order_id: int) -> None:
    try:
        writer.delete_order(order_id)
    except Exception:
        logger.exception("Compensation failed, order %s may be left behind", order_id)
    else:
        logger.info("Compensated order %s", order_id)


def persist_order(
    writer: OrderWriter,
    notifier: NotificationSink,
    *,
    draft: OrderDraft,
    items: list[ReconciledLineItem],
    totals: OrderTotals,
    payment: PaymentDispatch,
    vat_rate: Decimal,
) -> Order:
    """Write order, items, addons and options in that order.

    Each step needs ids generated by the one before it. Any failure after the order row
    exists removes the order before the step's error is raised.
    """

    try:
        order = writer.insert_order(_order_values(draft, items, totals, payment))
    except Exception as e:
        raise OrderCreateError(f"Failed to create order: {e}") from e

    order_id = order.id
    logger.info("Created order %s for user %s status=%s", order_id, draft.user_id, order.status)

    notifier.emit(
        order_placed_notification(
            user_id=draft.user_id, order_id=order_id, online=payment.is_online
        )
    )

    try:
        pairs = writer.insert_order_items([_order_item_row(order_id, i, vat_rate) for i in items])
    except Exception as e:
        _compensate(writer, order_id)
        raise OrderItemsCreateError(
            f"Failed to create order items: {e}", order_id=order_id
        ) from e

    order_item_ids = _link_order_items(pairs)

    addon_rows = [
        {
            "order_item_id": order_item_ids.get(item.menu_item_id),
            "addon_id": addon.addon_id,
            "quantity": 1,
            "addon_price": addon.price,
        }
        for item in items
        for addon in item.verified_addons
    ]
    if addon_rows:
        try:
            writer.insert_order_item_addons(addon_rows)
        except Exception as e:
            _compensate(writer, order_id)
            raise OrderAddonsCreateError(
                f"Failed to create order item addons: {e}", order_id=order_id
            ) from e

    option_rows = [
        {
            "order_item_id": order_item_ids.get(item.menu_item_id),
            "menu_option_id": option.menu_option_id,
            "option_name": option.option_name,
            "selected_value": option.selected_value,
            "quantity": 1,
            "option_price_adjustment": option.price_adjustment,
        }
        for item in items
        for option in item.verified_options
    ]
    if option_rows:
        try:
            writer.insert_order_item_options(option_rows)
        except Exception as e:
            _compensate(writer, order_id)
            raise OrderOptionsCreateError(
                f"Failed to create order item options: {e}", order_id=order_id
            ) from e

    try:
        writer.complete()
    except Exception as e:
        _compensate(writer, order_id)
        raise OrderCreateError(f"Failed to commit order: {e}", order_id=order_id) from e

    return order
