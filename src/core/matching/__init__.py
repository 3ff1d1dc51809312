# src/core/matching/__init__.py
"""
Домен поиска кандидатов.
Точные совпадения маршрута и альтернативы, ранжированные по расстоянию.
"""

from src.core.matching.models import (
    OfferSearchQuery,
    RankedCandidate,
    SearchQuery,
    SearchResult,
    TripSearchQuery,
)
from src.core.matching.service import CandidateSearch

__all__ = [
    "OfferSearchQuery",
    "RankedCandidate",
    "SearchQuery",
    "SearchResult",
    "TripSearchQuery",
    "CandidateSearch",
]
