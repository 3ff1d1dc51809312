# src/core/joins/models.py
"""
Модели заявок на присоединение.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.common.constants import JoinStatus, ParentType


class JoinRequest(BaseModel):
    """Заявка пользователя на поездку и/или предложение."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="ID заявки")
    user_id: int = Field(..., description="Автор заявки")
    trip_id: Optional[int] = Field(None, description="Связанная поездка")
    offer_id: Optional[int] = Field(None, description="Связанное предложение")
    status: JoinStatus = Field(JoinStatus.PENDING, description="Статус заявки")
    target: ParentType = Field(..., description="Запись, на которую автор подал заявку")
    seats_taken: int = Field(0, ge=0, description="Мест списано при принятии")
    created_at: Optional[dt.datetime] = Field(None, description="Время создания")

    @property
    def is_pending(self) -> bool:
        return self.status == JoinStatus.PENDING


class JoinedRide(BaseModel):
    """Заявка пользователя вместе с маршрутом родительской записи."""

    join: JoinRequest
    origin: Optional[str] = None
    destination: Optional[str] = None
    date: Optional[dt.date] = None


class ReconcileReport(BaseModel):
    """Итог прохода сверки связей."""

    scanned: int = 0
    trip_links: int = 0
    offer_links: int = 0
    failed: int = 0

    @property
    def linked(self) -> int:
        return self.trip_links + self.offer_links
