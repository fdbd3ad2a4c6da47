from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from pathlib import Path

import pytest
from services.api.app.config import Settings
from services.api.app.db.database import db_session
from services.api.app.db.init_db import init_db
from services.api.app.db.models import Addon, MenuItem, MenuOption
from sqlalchemy.orm import Session


def _seed_catalog(db: Session) -> None:
    db.add_all(
        [
            MenuItem(id=1, name="Rolex", price=Decimal("10000")),
            MenuItem(id=2, name="Beef Pilau", price=Decimal("3000")),
            Addon(id="addon-egg", name="Extra egg", price=Decimal("1500"), is_available=True),
            Addon(id="addon-avo", name="Avocado", price=Decimal("2000"), is_available=True),
            Addon(id="addon-off", name="Chips", price=Decimal("3000"), is_available=False),
            MenuOption(id="opt-small", name="Size: small", price_adjustment=Decimal("-500")),
            MenuOption(id="opt-large", name="Size: large", price_adjustment=Decimal("1000")),
        ]
    )
    db.commit()


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'platter_test.db'}")
    monkeypatch.setenv("PLATTER_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("PLATTER_PAYMENT_GATEWAY", "mock")
    return Settings.from_env()


@pytest.fixture()
def db(settings: Settings) -> Session:
    init_db(settings)
    session = db_session(settings.database_url)
    _seed_catalog(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def non_atomic_settings(settings: Settings) -> Settings:
    return replace(settings, atomic_order_writes=False)


@pytest.fixture()
def catalog_seeder():
    return _seed_catalog
