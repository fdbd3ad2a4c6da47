from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class AddonSelection(BaseModel):
    id: str | None = None
    # Client-side copies. Never used for pricing.
    name: str | None = None
    price: Decimal | None = None


class OptionSelection(BaseModel):
    id: str | None = None
    name: str | None = None
    value: str | None = None


class RequestedLineItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    quantity: int = Field(..., ge=1)
    name: str | None = None
    price: Decimal | None = None

    selected_addons: list[AddonSelection | None] = Field(
        default_factory=list, alias="selectedAddons"
    )
    selected_options: list[OptionSelection | None] = Field(
        default_factory=list, alias="selectedOptionDetails"
    )

    special_instructions: str | None = None
    is_gluten_free: bool = False
    is_vegetarian: bool = False
    is_vegan: bool = False
    requires_special_preparation: bool = False

    def addon_ids(self) -> list[str]:
        return [a.id for a in self.selected_addons if a is not None and a.id and a.id.strip()]

    def option_selections(self) -> list[OptionSelection]:
        return [o for o in self.selected_options if o is not None and o.id and o.id.strip()]


class DeliveryLocation(BaseModel):
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class OrderRequest(BaseModel):
    """Order submission as sent by the customer app.

    Required fields are checked by the order flow rather than the parser so that a missing
    field gets the same failure envelope as every other rejected order.
    """

    order_items: list[RequestedLineItem] = Field(default_factory=list)
    user_id: str | None = None
    phone_number: str | None = None
    delivery_address: str | None = None

    payment_method: str = ""
    status: str = "pending"
    delivery_method: str | None = None
    delivery_person_id: int | None = None
    order_note: str | None = None
    delivery_location: DeliveryLocation | None = None
    delivery_latitude: float | None = None
    delivery_longitude: float | None = None

    # Advisory only; recomputed server-side.
    total_amount: Decimal | None = None
    vat: Decimal | None = None
    total_amount_vat: Decimal | None = None
    created_at: str | None = None


class VerifiedAddon(BaseModel):
    addon_id: str
    name: str
    price: Decimal
    quantity: int = 1


class VerifiedOption(BaseModel):
    menu_option_id: str
    option_name: str
    price_adjustment: Decimal
    selected_value: str | None = None
    quantity: int = 1


class ReconciledLineItem(BaseModel):
    menu_item_id: int
    name: str
    quantity: int

    base_price: Decimal
    addon_total: Decimal
    options_total: Decimal
    unit_price: Decimal
    subtotal: Decimal

    verified_addons: list[VerifiedAddon]
    verified_options: list[VerifiedOption]

    special_instructions: str | None = None
    is_gluten_free: bool = False
    is_vegetarian: bool = False
    is_vegan: bool = False
    requires_special_preparation: bool = False


class OrderTotals(BaseModel):
    total_amount: Decimal
    vat: Decimal
    total_amount_vat: Decimal


class OrderItemAddonOut(BaseModel):
    id: int
    addon_id: str
    quantity: int
    addon_price: Decimal


class OrderItemOptionOut(BaseModel):
    id: int
    menu_option_id: str
    option_name: str
    selected_value: str | None
    quantity: int
    option_price_adjustment: Decimal


class OrderItemOut(BaseModel):
    id: int
    menu_item_id: int
    item_name: str
    quantity: int
    base_price: Decimal
    addon_total: Decimal
    options_total: Decimal
    total_item_price: Decimal
    subtotal: Decimal
    vat: Decimal
    special_instructions: str | None
    is_gluten_free: bool
    is_vegetarian: bool
    is_vegan: bool
    requires_special_preparation: bool
    addons: list[OrderItemAddonOut]
    options: list[OrderItemOptionOut]


class OrderOut(BaseModel):
    id: int
    user_id: str
    status: str
    payment_status: str
    payment_method: str
    tracking_id: str | None

    total_amount: Decimal
    vat: Decimal
    total_amount_vat: Decimal
    currency: str

    phone_number: str
    delivery_address: str
    delivery_method: str | None
    delivery_person_id: int | None
    delivery_latitude: float | None
    delivery_longitude: float | None
    order_note: str | None

    order_items: list[dict]
    created_at: str


class OrderDetail(OrderOut):
    items: list[OrderItemOut]


class OnlinePaymentOut(BaseModel):
    # Serialized as paymentUrl on the legacy /process-payment path.
    payment_url: str = Field(..., serialization_alias="paymentUrl")
    tracking_id: str


class CashPaymentOut(BaseModel):
    status: str = "cash_payment"
    message: str = "Order placed successfully. Payment will be collected on delivery."
