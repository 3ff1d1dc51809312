# src/core/notifications/models.py
"""
Модели уведомлений.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.common.constants import JoinStatus


class NotificationDraft(BaseModel):
    """Уведомление до записи в БД."""

    user_id: int = Field(..., description="Получатель")
    message_key: str = Field(..., description="Ключ текста в lang_dict")
    params: dict[str, Any] = Field(default_factory=dict, description="Параметры шаблона")
    join_id: Optional[int] = None
    trip_id: Optional[int] = None
    offer_id: Optional[int] = None


class Notification(BaseModel):
    """Сохранённое уведомление."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    join_id: Optional[int] = None
    trip_id: Optional[int] = None
    offer_id: Optional[int] = None
    message: str
    read: bool = False
    created_at: Optional[dt.datetime] = None


class NotificationView(Notification):
    """Уведомление для списка получателя вместе с текущим статусом заявки."""
    join_status: Optional[JoinStatus] = None
