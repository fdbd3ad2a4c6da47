"""Platter order API entrypoint."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from packages.shared.schemas.envelope_v1 import ErrorCodeV1
from services.api.app.config import Settings
from services.api.app.db.init_db import init_db
from services.api.app.routers.order import envelope_response
from services.api.app.routers.order import router as order_router
from starlette.exceptions import HTTPException as StarletteHTTPException

app = FastAPI(title="Platter API")

app.include_router(order_router)

_HTTP_ERROR_CODES = {
    404: ErrorCodeV1.NOT_FOUND,
    405: ErrorCodeV1.METHOD_NOT_ALLOWED,
}


@app.on_event("startup")
def _startup() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.settings = settings
    init_db(settings)


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(p) for p in err["loc"] if p != "body") for err in exc.errors()]
    return envelope_response(
        400,
        error="Invalid request payload",
        code=ErrorCodeV1.VALIDATION_ERROR,
        details={"fields": [f for f in fields if f]},
    )


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return envelope_response(
        exc.status_code,
        error=str(exc.detail),
        code=_HTTP_ERROR_CODES.get(exc.status_code, ErrorCodeV1.VALIDATION_ERROR),
    )


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
