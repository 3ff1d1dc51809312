# src/core/rides/models.py
"""
Модели поездок пассажиров (Trip) и предложений водителей (Offer).
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.common.constants import TripType


def clean_place(value: str) -> str:
    """Обрезает и схлопывает пробелы в названии места."""
    cleaned = " ".join(value.split())
    if not cleaned:
        raise ValueError("название места не может быть пустым")
    return cleaned


class Trip(BaseModel):
    """Запрос пассажира на поездку."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="ID поездки")
    user_id: int = Field(..., description="Владелец поездки")
    origin: str = Field(..., description="Откуда")
    destination: str = Field(..., description="Куда")
    date: dt.date = Field(..., description="Дата поездки")
    people: int = Field(1, ge=1, description="Количество пассажиров")
    purpose: Optional[str] = Field(None, description="Цель поездки")
    luggage: Optional[str] = Field(None, description="Багаж")
    pets: bool = Field(False, description="Едут ли животные")
    type: TripType = Field(TripType.REQUEST, description="Роль записи")
    created_at: Optional[dt.datetime] = Field(None, description="Время создания")


class Offer(BaseModel):
    """Предложение водителя."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="ID предложения")
    user_id: int = Field(..., description="Водитель")
    origin: str = Field(..., description="Откуда")
    destination: str = Field(..., description="Куда")
    date: dt.date = Field(..., description="Дата поездки")
    price: Optional[Decimal] = Field(None, ge=0, description="Цена за место")
    vehicle_type: Optional[str] = Field(None, description="Тип транспорта")
    seats_available: int = Field(0, ge=0, description="Свободные места")
    luggage: Optional[str] = Field(None, description="Допустимый багаж")
    pets: bool = Field(False, description="Можно ли с животными")
    notes: Optional[str] = Field(None, description="Примечания")
    valid_until: Optional[dt.date] = Field(None, description="Предложение действует до")
    created_at: Optional[dt.datetime] = Field(None, description="Время создания")


class OfferOverview(Offer):
    """Предложение владельца с числом занятых мест по принятым заявкам."""
    passengers_count: int = Field(0, ge=0, description="Занято мест принятыми заявками")


class TripCreateDTO(BaseModel):
    """DTO для создания и изменения поездки."""

    origin: str
    destination: str
    date: dt.date
    people: int = Field(1, ge=1)
    purpose: Optional[str] = None
    luggage: Optional[str] = None
    pets: bool = False

    @field_validator("origin", "destination")
    @classmethod
    def normalize_place(cls, v: str) -> str:
        return clean_place(v)


class OfferCreateDTO(BaseModel):
    """DTO для создания и изменения предложения."""

    origin: str
    destination: str
    date: dt.date
    price: Optional[Decimal] = Field(None, ge=0)
    vehicle_type: Optional[str] = None
    seats_available: int = Field(..., ge=0)
    luggage: Optional[str] = None
    pets: bool = False
    notes: Optional[str] = None
    valid_until: Optional[dt.date] = None

    @field_validator("origin", "destination")
    @classmethod
    def normalize_place(cls, v: str) -> str:
        return clean_place(v)
