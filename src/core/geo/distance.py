# src/core/geo/distance.py
"""
Расстояние по дуге большого круга (формула Haversine).
"""

from __future__ import annotations

import math

from pydantic import BaseModel

EARTH_RADIUS_KM = 6371.0


class Coordinates(BaseModel):
    """Координаты точки в градусах."""
    lon: float
    lat: float


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Вычисляет расстояние между двумя точками (в км) по формуле Haversine.
    """
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_between(a: Coordinates | None, b: Coordinates | None) -> float:
    """
    Расстояние между двумя точками в км.
    Если координаты хотя бы одной точки неизвестны, возвращает inf:
    такие кандидаты сортируются в конец, но не ломают поиск.
    """
    if a is None or b is None:
        return math.inf
    return haversine_km(a.lat, a.lon, b.lat, b.lon)
