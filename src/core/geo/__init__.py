# src/core/geo/__init__.py
"""
Геокодирование и расчёт расстояний.
"""

from src.core.geo.distance import Coordinates, distance_between, haversine_km
from src.core.geo.service import GeocoderAdapter, canonical_place

__all__ = [
    "Coordinates",
    "distance_between",
    "haversine_km",
    "GeocoderAdapter",
    "canonical_place",
]
