from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest
from services.api.app.config import Settings
from services.api.app.db.database import db_session
from services.api.app.db.models import (
    Notification,
    Order,
    OrderItem,
    OrderItemAddon,
    OrderItemOption,
)
from services.api.app.models.order import OrderTotals, ReconciledLineItem, RequestedLineItem
from services.api.app.services.catalog import SqlCatalogReader, resolve_catalog
from services.api.app.services.notifications import SqlNotificationSink
from services.api.app.services.order_errors import (
    OrderAddonsCreateError,
    OrderCreateError,
    OrderItemsCreateError,
    OrderOptionsCreateError,
)
from services.api.app.services.order_saga import OrderDraft, SqlOrderWriter, persist_order
from services.api.app.services.payment_dispatch import PaymentDispatch
from services.api.app.services.pricing import compute_order_totals, reconcile_line_items
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

VAT = Decimal("0.18")

_DRAFT = OrderDraft(
    user_id="u-1",
    phone_number="+256700000001",
    delivery_address="Plot 4, Kampala Road",
    payment_method="cash",
    currency="UGX",
    delivery_latitude=0.3136,
    delivery_longitude=32.5811,
)

_CASH = PaymentDispatch(method="cash", initial_status="pending")


def _priced(db: Session, *lines: dict) -> tuple[list[ReconciledLineItem], OrderTotals]:
    requested = [RequestedLineItem.model_validate(line) for line in lines]
    items = reconcile_line_items(requested, resolve_catalog(SqlCatalogReader(db), requested))
    return items, compute_order_totals(items, VAT)


_FULL_LINE = {
    "id": 1,
    "quantity": 2,
    "selectedAddons": [{"id": "addon-egg"}],
    "selectedOptionDetails": [{"id": "opt-small", "value": "small"}],
    "special_instructions": "no onions",
    "is_vegetarian": True,
}


def _persist(writer, db: Session, items, totals) -> Order:
    return persist_order(
        writer,
        SqlNotificationSink(db),
        draft=_DRAFT,
        items=items,
        totals=totals,
        payment=_CASH,
        vat_rate=VAT,
    )


def _count(settings: Settings, model: type) -> int:
    fresh = db_session(settings.database_url)
    try:
        return fresh.query(model).count()
    finally:
        fresh.close()


@pytest.mark.parametrize("atomic", [True, False])
def test_persists_full_aggregate(db: Session, settings: Settings, atomic: bool) -> None:
    items, totals = _priced(db, _FULL_LINE, {"id": 2, "quantity": 1})

    order = _persist(SqlOrderWriter(db, atomic=atomic), db, items, totals)

    fresh = db_session(settings.database_url)
    try:
        stored = fresh.get(Order, order.id)
        assert stored is not None
        assert stored.status == "pending"
        assert stored.tracking_id is None
        assert stored.total_amount == Decimal("25000")
        assert stored.vat == Decimal("4500")
        assert stored.total_amount_vat == Decimal("29500")
        assert stored.delivery_point_wkt == "POINT(32.5811 0.3136)"
        assert [i["menu_item_id"] for i in stored.order_items] == [1, 2]

        rolex, pilau = stored.items
        assert rolex.subtotal == Decimal("22000")
        assert rolex.total_item_price == Decimal("11000")
        assert rolex.vat == Decimal("3960")
        assert rolex.is_vegetarian is True
        assert rolex.special_instructions == "no onions"
        assert [(a.addon_id, a.addon_price) for a in rolex.addons] == [
            ("addon-egg", Decimal("1500"))
        ]
        assert [(o.menu_option_id, o.selected_value) for o in rolex.options] == [
            ("opt-small", "small")
        ]
        assert pilau.addons == [] and pilau.options == []

        notes = fresh.query(Notification).filter(Notification.order_id == order.id).all()
        assert len(notes) == 1
        assert "collected on delivery" in notes[0].body
    finally:
        fresh.close()


class _FailingWriter(SqlOrderWriter):
    def __init__(self, db: Session, *, atomic: bool, fail_on: str) -> None:
        super().__init__(db, atomic=atomic)
        self._fail_on = fail_on
        self.order_id: int | None = None

    def insert_order(self, values: dict[str, Any]) -> Order:
        if self._fail_on == "order":
            raise SQLAlchemyError("orders insert rejected")
        order = super().insert_order(values)
        self.order_id = order.id
        return order

    def insert_order_items(self, rows: list[dict[str, Any]]) -> list[tuple[int, int]]:
        if self._fail_on == "items":
            raise SQLAlchemyError("order_items insert rejected")
        return super().insert_order_items(rows)

    def insert_order_item_addons(self, rows: list[dict[str, Any]]) -> None:
        if self._fail_on == "addons":
            raise SQLAlchemyError("order_item_addons insert rejected")
        super().insert_order_item_addons(rows)

    def insert_order_item_options(self, rows: list[dict[str, Any]]) -> None:
        if self._fail_on == "options":
            raise SQLAlchemyError("order_item_options insert rejected")
        super().insert_order_item_options(rows)


@pytest.mark.parametrize("atomic", [True, False])
@pytest.mark.parametrize(
    ("fail_on", "error"),
    [
        ("items", OrderItemsCreateError),
        ("addons", OrderAddonsCreateError),
        ("options", OrderOptionsCreateError),
    ],
)
def test_later_step_failure_removes_order(
    db: Session, settings: Settings, atomic: bool, fail_on: str, error: type
) -> None:
    items, totals = _priced(db, _FULL_LINE)
    writer = _FailingWriter(db, atomic=atomic, fail_on=fail_on)

    with pytest.raises(error) as exc:
        _persist(writer, db, items, totals)

    assert writer.order_id is not None
    assert exc.value.order_id == writer.order_id

    fresh = db_session(settings.database_url)
    try:
        assert fresh.get(Order, writer.order_id) is None
    finally:
        fresh.close()

    for model in (Order, OrderItem, OrderItemAddon, OrderItemOption, Notification):
        assert _count(settings, model) == 0


def test_order_insert_failure_has_nothing_to_compensate(db: Session, settings: Settings) -> None:
    items, totals = _priced(db, _FULL_LINE)

    with pytest.raises(OrderCreateError) as exc:
        _persist(_FailingWriter(db, atomic=False, fail_on="order"), db, items, totals)

    assert exc.value.order_id is None
    assert _count(settings, Order) == 0


class _RecordingWriter:
    def __init__(self, *, fail_on: str | None = None, fail_delete: bool = False) -> None:
        self.calls: list[str] = []
        self._fail_on = fail_on
        self._fail_delete = fail_delete
        self._next_id = 100

    def _step(self, name: str) -> None:
        self.calls.append(name)
        if self._fail_on == name:
            raise RuntimeError(f"{name} failed")

    def insert_order(self, values: dict[str, Any]) -> Order:
        self._step("insert_order")
        return Order(id=7, status=values["status"], user_id=values["user_id"])

    def insert_order_items(self, rows: list[dict[str, Any]]) -> list[tuple[int, int]]:
        self._step("insert_order_items")
        pairs = []
        for row in rows:
            self._next_id += 1
            pairs.append((row["menu_item_id"], self._next_id))
        return pairs

    def insert_order_item_addons(self, rows: list[dict[str, Any]]) -> None:
        self._step("insert_order_item_addons")
        self.addon_rows = rows

    def insert_order_item_options(self, rows: list[dict[str, Any]]) -> None:
        self._step("insert_order_item_options")
        self.option_rows = rows

    def delete_order(self, order_id: int) -> None:
        self.calls.append(f"delete_order:{order_id}")
        if self._fail_delete:
            raise RuntimeError("delete failed")

    def complete(self) -> None:
        self.calls.append("complete")


class _RecordingSink:
    def __init__(self) -> None:
        self.sent = []

    def emit(self, notification) -> None:
        self.sent.append(notification)


def _persist_recorded(writer: _RecordingWriter, items, totals) -> Order:
    return persist_order(
        writer,
        _RecordingSink(),
        draft=_DRAFT,
        items=items,
        totals=totals,
        payment=_CASH,
        vat_rate=VAT,
    )


def test_steps_without_rows_are_skipped(db: Session) -> None:
    items, totals = _priced(db, {"id": 2, "quantity": 1})
    writer = _RecordingWriter()

    _persist_recorded(writer, items, totals)

    assert writer.calls == ["insert_order", "insert_order_items", "complete"]


def test_steps_run_in_order(db: Session) -> None:
    items, totals = _priced(db, _FULL_LINE)
    writer = _RecordingWriter()

    _persist_recorded(writer, items, totals)

    assert writer.calls == [
        "insert_order",
        "insert_order_items",
        "insert_order_item_addons",
        "insert_order_item_options",
        "complete",
    ]


def test_compensation_failure_still_raises_step_error(db: Session) -> None:
    items, totals = _priced(db, _FULL_LINE)
    writer = _RecordingWriter(fail_on="insert_order_item_addons", fail_delete=True)

    with pytest.raises(OrderAddonsCreateError):
        _persist_recorded(writer, items, totals)

    assert writer.calls[-1] == "delete_order:7"
    assert "insert_order_item_options" not in writer.calls


def test_duplicate_menu_items_link_to_last_order_item(db: Session) -> None:
    items, totals = _priced(
        db,
        {"id": 1, "quantity": 1, "selectedAddons": [{"id": "addon-egg"}]},
        {"id": 1, "quantity": 1, "selectedAddons": [{"id": "addon-avo"}]},
    )
    writer = _RecordingWriter()

    _persist_recorded(writer, items, totals)

    # Generated ids are 101 and 102; both addons land on the second row.
    assert [row["order_item_id"] for row in writer.addon_rows] == [102, 102]


def test_online_order_notification_asks_for_payment(db: Session) -> None:
    items, totals = _priced(db, {"id": 2, "quantity": 1})
    sink = _RecordingSink()

    persist_order(
        _RecordingWriter(),
        sink,
        draft=_DRAFT,
        items=items,
        totals=totals,
        payment=PaymentDispatch(
            method="online",
            initial_status="Awaiting Payment",
            tracking_id="trk-1",
            redirect_url="https://pay.test/trk-1",
        ),
        vat_rate=VAT,
    )

    assert len(sink.sent) == 1
    assert sink.sent[0].order_id == 7
    assert "Complete your payment" in sink.sent[0].body
