from __future__ import annotations

from services.api.app.config import Settings
from services.api.app.db.database import get_engine
from services.api.app.db.models import Base


def init_db(settings: Settings) -> None:
    if not settings.db_auto_create:
        return

    engine = get_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
