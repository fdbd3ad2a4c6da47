from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from services.api.app.db.models import Addon, MenuItem, MenuOption
from services.api.app.models.order import RequestedLineItem
from services.api.app.services.order_errors import (
    CatalogLookupError,
    MissingAddonsError,
    MissingOptionsError,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CatalogMenuItem:
    id: int
    name: str
    price: Decimal


@dataclass(frozen=True, slots=True)
class CatalogAddon:
    id: str
    name: str
    price: Decimal


@dataclass(frozen=True, slots=True)
class CatalogMenuOption:
    id: str
    name: str
    price_adjustment: Decimal


@dataclass(frozen=True, slots=True)
class ResolvedCatalog:
    menu_items: dict[int, CatalogMenuItem] = field(default_factory=dict)
    addons: dict[str, CatalogAddon] = field(default_factory=dict)
    options: dict[str, CatalogMenuOption] = field(default_factory=dict)


class CatalogReader(Protocol):
    """Bulk reads by id. A `None` result means the store gave no result set at all."""

    def fetch_menu_items(self, ids: Sequence[int]) -> list[CatalogMenuItem] | None: ...

    def fetch_available_addons(self, ids: Sequence[str]) -> list[CatalogAddon] | None: ...

    def fetch_menu_options(self, ids: Sequence[str]) -> list[CatalogMenuOption] | None: ...


def _require(value: object, table: str, row_id: object, column: str) -> object:
    if value is None:
        raise CatalogLookupError(f"Catalog row {table}.{row_id} has no {column}")
    return value


class SqlCatalogReader:
    def __init__(self, db: Session) -> None:
        self._db = db

    def fetch_menu_items(self, ids: Sequence[int]) -> list[CatalogMenuItem] | None:
        rows = self._db.query(MenuItem).filter(MenuItem.id.in_(list(ids))).all()
        return [
            CatalogMenuItem(
                id=r.id,
                name=_require(r.name, "menus", r.id, "name"),
                price=Decimal(_require(r.price, "menus", r.id, "price")),
            )
            for r in rows
        ]

    def fetch_available_addons(self, ids: Sequence[str]) -> list[CatalogAddon] | None:
        rows = (
            self._db.query(Addon)
            .filter(Addon.id.in_(list(ids)))
            .filter(Addon.is_available.is_(True))
            .all()
        )
        return [
            CatalogAddon(
                id=r.id,
                name=_require(r.name, "addons", r.id, "name"),
                price=Decimal(_require(r.price, "addons", r.id, "price")),
            )
            for r in rows
        ]

    def fetch_menu_options(self, ids: Sequence[str]) -> list[CatalogMenuOption] | None:
        rows = self._db.query(MenuOption).filter(MenuOption.id.in_(list(ids))).all()
        return [
            CatalogMenuOption(
                id=r.id,
                name=_require(r.name, "menu_options", r.id, "name"),
                price_adjustment=Decimal(
                    _require(r.price_adjustment, "menu_options", r.id, "price_adjustment")
                ),
            )
            for r in rows
        ]


def _distinct(values: Iterable) -> list:
    return list(dict.fromkeys(values))


def resolve_catalog(reader: CatalogReader, line_items: list[RequestedLineItem]) -> ResolvedCatalog:
    """Fetch every catalog record the request references, failing closed on any gap.

    Menu item gaps are left to pricing, which knows which line referenced the id. Addon and
    option gaps fail here so the error can name every missing id at once.
    """

    menu_ids = _distinct(item.id for item in line_items)
    try:
        menu_rows = reader.fetch_menu_items(menu_ids)
    except CatalogLookupError:
        raise
    except SQLAlchemyError as e:
        raise CatalogLookupError("Failed to fetch menu items") from e
    if menu_rows is None:
        raise CatalogLookupError("Failed to fetch menu items")

    addon_ids = _distinct(a for item in line_items for a in item.addon_ids())
    addons: dict[str, CatalogAddon] = {}
    if addon_ids:
        logger.debug("Requested addon ids: %s", addon_ids)
        try:
            addon_rows = reader.fetch_available_addons(addon_ids)
        except CatalogLookupError:
            raise
        except SQLAlchemyError as e:
            raise CatalogLookupError(f"Failed to fetch addon prices: {e}") from e
        if addon_rows is None:
            raise CatalogLookupError("Failed to fetch addons from database")
        if not addon_rows:
            raise MissingAddonsError(addon_ids, reason="No available addons found.")

        addons = {a.id: a for a in addon_rows}
        missing = [a for a in addon_ids if a not in addons]
        if missing:
            raise MissingAddonsError(missing)

    option_ids = _distinct(o.id for item in line_items for o in item.option_selections())
    options: dict[str, CatalogMenuOption] = {}
    if option_ids:
        try:
            option_rows = reader.fetch_menu_options(option_ids)
        except CatalogLookupError:
            raise
        except SQLAlchemyError as e:
            raise CatalogLookupError(f"Failed to fetch menu options: {e}") from e
        if option_rows is None:
            raise CatalogLookupError("Failed to fetch menu options from database")

        options = {o.id: o for o in option_rows}
        missing = [o for o in option_ids if o not in options]
        if missing:
            raise MissingOptionsError(missing)

    return ResolvedCatalog(
        menu_items={m.id: m for m in menu_rows},
        addons=addons,
        options=options,
    )
