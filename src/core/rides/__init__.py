# src/core/rides/__init__.py
"""
Поездки пассажиров и предложения водителей.
"""

from src.core.rides.models import Offer, OfferCreateDTO, OfferOverview, Trip, TripCreateDTO
from src.core.rides.repository import OfferRepository, TripRepository
from src.core.rides.service import RideService

__all__ = [
    "Offer",
    "OfferCreateDTO",
    "OfferOverview",
    "Trip",
    "TripCreateDTO",
    "OfferRepository",
    "TripRepository",
    "RideService",
]
