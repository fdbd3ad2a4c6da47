from __future__ import annotations

from decimal import Decimal

import pytest
from services.api.app.models.order import RequestedLineItem
from services.api.app.services.catalog import (
    CatalogAddon,
    CatalogMenuItem,
    CatalogMenuOption,
    ResolvedCatalog,
)
from services.api.app.services.order_errors import UnknownMenuItemError
from services.api.app.services.pricing import (
    compute_order_totals,
    quantize_money,
    reconcile_line_item,
    reconcile_line_items,
)


def _catalog() -> ResolvedCatalog:
    return ResolvedCatalog(
        menu_items={
            1: CatalogMenuItem(id=1, name="Rolex", price=Decimal("10000")),
            2: CatalogMenuItem(id=2, name="Juice", price=Decimal("1000")),
        },
        addons={
            "addon-egg": CatalogAddon(id="addon-egg", name="Extra egg", price=Decimal("1500")),
        },
        options={
            "opt-small": CatalogMenuOption(
                id="opt-small", name="Size: small", price_adjustment=Decimal("-500")
            ),
            "opt-tiny": CatalogMenuOption(
                id="opt-tiny", name="Size: tiny", price_adjustment=Decimal("-1500")
            ),
        },
    )


def _line(**kwargs) -> RequestedLineItem:
    return RequestedLineItem.model_validate(kwargs)


def test_unit_price_equals_base_without_selections() -> None:
    item = reconcile_line_item(_line(id=1, quantity=3), _catalog())

    assert item.unit_price == Decimal("10000")
    assert item.addon_total == 0
    assert item.options_total == 0
    assert item.subtotal == Decimal("30000")
    assert item.verified_addons == []
    assert item.verified_options == []


def test_reference_scenario_totals() -> None:
    line = _line(
        id=1,
        quantity=2,
        selectedAddons=[{"id": "addon-egg"}],
        selectedOptionDetails=[{"id": "opt-small", "value": "small"}],
    )

    items = reconcile_line_items([line], _catalog())
    totals = compute_order_totals(items, Decimal("0.18"))

    assert items[0].subtotal == Decimal("22000")
    assert totals.total_amount == Decimal("22000")
    assert totals.vat == Decimal("3960")
    assert totals.total_amount_vat == Decimal("25960")


def test_client_prices_and_names_are_ignored() -> None:
    line = _line(
        id=1,
        quantity=1,
        name="Free lunch",
        price="1",
        selectedAddons=[{"id": "addon-egg", "name": "egg", "price": "0"}],
    )

    item = reconcile_line_item(line, _catalog())

    assert item.name == "Rolex"
    assert item.unit_price == Decimal("11500")
    assert item.verified_addons[0].price == Decimal("1500")


def test_negative_adjustment_is_not_clamped() -> None:
    line = _line(id=2, quantity=2, selectedOptionDetails=[{"id": "opt-tiny", "value": "tiny"}])

    item = reconcile_line_item(line, _catalog())

    assert item.unit_price == Decimal("-500")
    assert item.subtotal == Decimal("-1000")


def test_unknown_menu_item_raises() -> None:
    with pytest.raises(UnknownMenuItemError) as exc:
        reconcile_line_item(_line(id=99, quantity=1), _catalog())

    assert exc.value.menu_item_id == 99
    assert "99" in str(exc.value)


def test_selection_missing_from_catalog_prices_at_zero(caplog: pytest.LogCaptureFixture) -> None:
    line = _line(
        id=1,
        quantity=1,
        selectedAddons=[{"id": "addon-egg"}, {"id": "addon-ghost"}],
        selectedOptionDetails=[{"id": "opt-ghost", "value": "x"}],
    )

    item = reconcile_line_item(line, _catalog())

    assert item.addon_total == Decimal("1500")
    assert item.options_total == 0
    assert [a.addon_id for a in item.verified_addons] == ["addon-egg"]
    assert item.verified_options == []
    assert "addon-ghost" in caplog.text


def test_blank_selections_are_treated_as_absent() -> None:
    line = _line(
        id=1,
        quantity=1,
        selectedAddons=[{"id": ""}, {"id": "   "}, None, {"name": "no id"}],
        selectedOptionDetails=[{"id": " ", "value": "x"}],
    )

    item = reconcile_line_item(line, _catalog())

    assert item.unit_price == Decimal("10000")


def test_repeated_addon_selection_counts_each_time() -> None:
    line = _line(id=1, quantity=1, selectedAddons=[{"id": "addon-egg"}, {"id": "addon-egg"}])

    item = reconcile_line_item(line, _catalog())

    assert item.addon_total == Decimal("3000")
    assert [a.quantity for a in item.verified_addons] == [1, 1]


def test_option_value_is_kept_verbatim() -> None:
    line = _line(
        id=1, quantity=1, selectedOptionDetails=[{"id": "opt-small", "value": "  Small (kids) "}]
    )

    item = reconcile_line_item(line, _catalog())

    assert item.verified_options[0].selected_value == "  Small (kids) "
    assert item.verified_options[0].option_name == "Size: small"


def test_order_totals_sum_subtotals_and_apply_rate() -> None:
    catalog = ResolvedCatalog(
        menu_items={7: CatalogMenuItem(id=7, name="Odd", price=Decimal("333.33"))}
    )
    items = reconcile_line_items([_line(id=7, quantity=1), _line(id=7, quantity=2)], catalog)

    totals = compute_order_totals(items, Decimal("0.18"))

    assert totals.total_amount == Decimal("999.99")
    assert totals.vat == quantize_money(Decimal("999.99") * Decimal("0.18"))
    assert totals.total_amount_vat == totals.total_amount + totals.vat
