from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request
from services.api.app.config import Settings
from services.api.app.db.database import db_session
from sqlalchemy.orm import Session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(settings: Settings = Depends(get_settings)) -> Generator[Session, None, None]:
    db = db_session(settings.database_url)
    try:
        yield db
    finally:
        db.close()
