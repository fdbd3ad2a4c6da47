"""Shared notification schema (v1).

The backend writes one row per notification; the customer app polls and renders them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class NotificationTypeV1(str, Enum):
    ORDER_PLACED = "ORDER PLACED"


class NotificationV1(BaseModel):
    user_id: str
    order_id: int

    title: str
    body: str
    type: NotificationTypeV1 = NotificationTypeV1.ORDER_PLACED
    is_read: bool = False
