from __future__ import annotations

import logging
from decimal import ROUND_HALF_EVEN, Decimal

from services.api.app.models.order import (
    OrderTotals,
    ReconciledLineItem,
    RequestedLineItem,
    VerifiedAddon,
    VerifiedOption,
)
from services.api.app.services.catalog import ResolvedCatalog
from services.api.app.services.order_errors import UnknownMenuItemError

logger = logging.getLogger(__name__)

DEFAULT_VAT_RATE = Decimal("0.18")
_CENTS = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(_CENTS, rounding=ROUND_HALF_EVEN)


def vat_for(amount: Decimal, vat_rate: Decimal = DEFAULT_VAT_RATE) -> Decimal:
    return quantize_money(amount * vat_rate)


def reconcile_line_item(item: RequestedLineItem, catalog: ResolvedCatalog) -> ReconciledLineItem:
    menu_item = catalog.menu_items.get(item.id)
    if menu_item is None:
        raise UnknownMenuItemError(item.id)

    verified_addons: list[VerifiedAddon] = []
    for addon_id in item.addon_ids():
        addon = catalog.addons.get(addon_id)
        if addon is None:
            # Resolution already rejects unknown addons; reaching here means the resolver and
            # this function disagree. Priced at zero and left off the order.
            logger.warning(
                "Addon %s missing from resolved catalog for menu item %s", addon_id, item.id
            )
            continue
        verified_addons.append(VerifiedAddon(addon_id=addon.id, name=addon.name, price=addon.price))

    verified_options: list[VerifiedOption] = []
    for selection in item.option_selections():
        option = catalog.options.get(selection.id)
        if option is None:
            logger.warning(
                "Option %s missing from resolved catalog for menu item %s", selection.id, item.id
            )
            continue
        verified_options.append(
            VerifiedOption(
                menu_option_id=option.id,
                option_name=option.name,
                price_adjustment=option.price_adjustment,
                selected_value=selection.value,
            )
        )

    base_price = menu_item.price
    addon_total = sum((a.price for a in verified_addons), Decimal("0"))
    options_total = sum((o.price_adjustment for o in verified_options), Decimal("0"))
    # No floor: a large negative option may take the unit price below base.
    unit_price = base_price + addon_total + options_total

    return ReconciledLineItem(
        menu_item_id=menu_item.id,
        name=menu_item.name,
        quantity=item.quantity,
        base_price=base_price,
        addon_total=addon_total,
        options_total=options_total,
        unit_price=unit_price,
        subtotal=unit_price * item.quantity,
        verified_addons=verified_addons,
        verified_options=verified_options,
        special_instructions=item.special_instructions,
        is_gluten_free=item.is_gluten_free,
        is_vegetarian=item.is_vegetarian,
        is_vegan=item.is_vegan,
        requires_special_preparation=item.requires_special_preparation,
    )


def reconcile_line_items(
    line_items: list[RequestedLineItem], catalog: ResolvedCatalog
) -> list[ReconciledLineItem]:
    return [reconcile_line_item(item, catalog) for item in line_items]


def compute_order_totals(
    items: list[ReconciledLineItem], vat_rate: Decimal = DEFAULT_VAT_RATE
) -> OrderTotals:
    total_amount = sum((item.subtotal for item in items), Decimal("0"))
    vat = vat_for(total_amount, vat_rate)
    return OrderTotals(
        total_amount=total_amount,
        vat=vat,
        total_amount_vat=total_amount + vat,
    )
