# src/core/matching/models.py
"""
Модели поиска кандидатов: запросы (по роли) и результат.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Annotated, Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, Field, field_serializer, field_validator

from src.common.constants import SearchRole
from src.core.rides.models import clean_place

CandidateT = TypeVar("CandidateT", bound=BaseModel)


class _RouteQuery(BaseModel):
    """Общие поля поискового запроса."""

    origin: str = Field(..., description="Откуда")
    destination: str = Field(..., description="Куда")
    date: dt.date = Field(..., description="Дата поездки")
    party_size: int = Field(1, ge=1, description="Сколько мест нужно (или может дать водитель)")
    pets_required: bool = Field(False, description="Нужна перевозка животных")

    @field_validator("origin", "destination")
    @classmethod
    def normalize_place(cls, v: str) -> str:
        return clean_place(v)


class OfferSearchQuery(_RouteQuery):
    """Пассажир ищет предложения водителей."""
    role: Literal["offers"] = SearchRole.OFFERS.value


class TripSearchQuery(_RouteQuery):
    """Водитель ищет поездки пассажиров; свои поездки не возвращаются."""
    role: Literal["trips"] = SearchRole.TRIPS.value
    excluding_user_id: Optional[int] = Field(None, description="Кто ищет")


SearchQuery = Annotated[Union[OfferSearchQuery, TripSearchQuery], Field(discriminator="role")]


class RankedCandidate(BaseModel, Generic[CandidateT]):
    """Альтернативный кандидат с расстояниями до точек запроса (км, inf если неизвестно)."""

    candidate: CandidateT
    distance_to_origin: float
    distance_to_destination: float

    @field_serializer("distance_to_origin", "distance_to_destination", when_used="json")
    def serialize_distance(self, value: float) -> Optional[float]:
        # В JSON нет бесконечности: неизвестное расстояние отдаётся как null
        return value if math.isfinite(value) else None


class SearchResult(BaseModel, Generic[CandidateT]):
    """Точные совпадения и ранжированные альтернативы."""

    exact: list[CandidateT] = Field(default_factory=list)
    alternatives: list[RankedCandidate[CandidateT]] = Field(default_factory=list)
