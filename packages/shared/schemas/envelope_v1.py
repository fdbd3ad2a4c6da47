"""Shared response envelope schema (v1).

Web and mobile clients branch on `success` and, for failures, on `code`. The message in
`error` is for humans and may change between releases.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCodeV1(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    CATALOG_LOOKUP_FAILED = "CATALOG_LOOKUP_FAILED"
    MISSING_ADDONS = "MISSING_ADDONS"
    MISSING_OPTIONS = "MISSING_OPTIONS"
    UNKNOWN_MENU_ITEM = "UNKNOWN_MENU_ITEM"

    UNSUPPORTED_PAYMENT_METHOD = "UNSUPPORTED_PAYMENT_METHOD"
    PAYMENT_AUTH_FAILED = "PAYMENT_AUTH_FAILED"
    PAYMENT_SUBMIT_FAILED = "PAYMENT_SUBMIT_FAILED"

    ORDER_CREATE_FAILED = "ORDER_CREATE_FAILED"
    ORDER_ITEMS_CREATE_FAILED = "ORDER_ITEMS_CREATE_FAILED"
    ORDER_ADDONS_CREATE_FAILED = "ORDER_ADDONS_CREATE_FAILED"
    ORDER_OPTIONS_CREATE_FAILED = "ORDER_OPTIONS_CREATE_FAILED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class SuccessEnvelopeV1(BaseModel):
    success: bool = True
    data: dict[str, Any]


class FailureEnvelopeV1(BaseModel):
    success: bool = False
    error: str
    code: ErrorCodeV1 = ErrorCodeV1.INTERNAL_ERROR
    details: dict[str, Any] = Field(default_factory=dict)
