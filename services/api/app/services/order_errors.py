from __future__ import annotations

from typing import Any

from packages.shared.schemas.envelope_v1 import ErrorCodeV1


class OrderFlowError(Exception):
    """Base class for every failure that aborts an order submission."""

    code: ErrorCodeV1 = ErrorCodeV1.INTERNAL_ERROR
    status_code: int = 400

    def details(self) -> dict[str, Any]:
        return {}


# Request


class OrderValidationError(OrderFlowError):
    code = ErrorCodeV1.VALIDATION_ERROR
    status_code = 400

    def __init__(self, missing_fields: list[str]) -> None:
        super().__init__("Missing required fields: " + ", ".join(missing_fields))
        self.missing_fields = missing_fields

    def details(self) -> dict[str, Any]:
        return {"missing_fields": self.missing_fields}


# Catalog and pricing. Raised before any write.


class CatalogLookupError(OrderFlowError):
    code = ErrorCodeV1.CATALOG_LOOKUP_FAILED
    status_code = 422


class MissingAddonsError(CatalogLookupError):
    code = ErrorCodeV1.MISSING_ADDONS

    def __init__(self, missing_ids: list[str], *, reason: str | None = None) -> None:
        super().__init__(
            (reason or "Some addons were not found or are not available.")
            + f" Missing addon IDs: {', '.join(missing_ids)}"
        )
        self.missing_ids = missing_ids

    def details(self) -> dict[str, Any]:
        return {"missing_ids": self.missing_ids}


class MissingOptionsError(CatalogLookupError):
    code = ErrorCodeV1.MISSING_OPTIONS

    def __init__(self, missing_ids: list[str]) -> None:
        super().__init__(
            "Some menu options were not found. "
            f"Missing option IDs: {', '.join(missing_ids)}"
        )
        self.missing_ids = missing_ids

    def details(self) -> dict[str, Any]:
        return {"missing_ids": self.missing_ids}


class UnknownMenuItemError(OrderFlowError):
    code = ErrorCodeV1.UNKNOWN_MENU_ITEM
    status_code = 422

    def __init__(self, menu_item_id: int) -> None:
        super().__init__(f"Menu item with id {menu_item_id} not found")
        self.menu_item_id = menu_item_id

    def details(self) -> dict[str, Any]:
        return {"menu_item_id": self.menu_item_id}


# Payment. Raised before any write.


class UnsupportedPaymentMethodError(OrderFlowError):
    code = ErrorCodeV1.UNSUPPORTED_PAYMENT_METHOD
    status_code = 400

    def __init__(self, method: str) -> None:
        super().__init__(f"Unsupported payment method: {method}")
        self.method = method

    def details(self) -> dict[str, Any]:
        return {"payment_method": self.method}


class PaymentAuthError(OrderFlowError):
    code = ErrorCodeV1.PAYMENT_AUTH_FAILED
    status_code = 502


class PaymentSubmitError(OrderFlowError):
    code = ErrorCodeV1.PAYMENT_SUBMIT_FAILED
    status_code = 502


# Persistence. Anything after the order row triggers compensation.


class OrderPersistenceError(OrderFlowError):
    status_code = 500

    def __init__(self, message: str, *, order_id: int | None = None) -> None:
        super().__init__(message)
        self.order_id = order_id

    def details(self) -> dict[str, Any]:
        return {"order_id": self.order_id} if self.order_id is not None else {}


class OrderCreateError(OrderPersistenceError):
    code = ErrorCodeV1.ORDER_CREATE_FAILED


class OrderItemsCreateError(OrderPersistenceError):
    code = ErrorCodeV1.ORDER_ITEMS_CREATE_FAILED


class OrderAddonsCreateError(OrderPersistenceError):
    code = ErrorCodeV1.ORDER_ADDONS_CREATE_FAILED


class OrderOptionsCreateError(OrderPersistenceError):
    code = ErrorCodeV1.ORDER_OPTIONS_CREATE_FAILED
