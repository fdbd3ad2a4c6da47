from __future__ import annotations

import argparse
from dataclasses import replace
from decimal import Decimal

from services.api.app.config import Settings
from services.api.app.db.database import db_session
from services.api.app.db.init_db import init_db
from services.api.app.db.models import Addon, MenuItem, MenuOption

_MENU = (
    (1, "Rolex", Decimal("5000")),
    (2, "Chicken Luwombo", Decimal("25000")),
    (3, "Beef Pilau", Decimal("18000")),
    (4, "Fresh Passion Juice", Decimal("4000")),
)

_ADDONS = (
    ("addon-extra-egg", "Extra egg", Decimal("1000"), True),
    ("addon-avocado", "Avocado", Decimal("1500"), True),
    ("addon-kachumbari", "Kachumbari", Decimal("500"), True),
    ("addon-chips", "Side of chips", Decimal("3000"), False),
)

_OPTIONS = (
    ("option-size-small", "Size: small", Decimal("-500")),
    ("option-size-large", "Size: large", Decimal("2000")),
    ("option-spice", "Spice level", Decimal("0")),
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a minimal Platter catalog")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    args = parser.parse_args()

    settings = Settings.from_env()
    if args.database_url:
        settings = replace(settings, database_url=args.database_url)
    init_db(settings)

    db = db_session(settings.database_url)
    try:
        for menu_id, name, price in _MENU:
            if db.get(MenuItem, menu_id) is None:
                db.add(MenuItem(id=menu_id, name=name, price=price))

        for addon_id, name, price, available in _ADDONS:
            if db.get(Addon, addon_id) is None:
                db.add(Addon(id=addon_id, name=name, price=price, is_available=available))

        for option_id, name, adjustment in _OPTIONS:
            if db.get(MenuOption, option_id) is None:
                db.add(MenuOption(id=option_id, name=name, price_adjustment=adjustment))

        db.commit()
        print(
            f"Seeded {len(_MENU)} menu items, {len(_ADDONS)} addons, {len(_OPTIONS)} options"
        )
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
