# src/core/matching/service.py
"""
Поиск кандидатов для пассажира (предложения) и водителя (поездки).

Точные совпадения: тот же канонический маршрут и дата.
Альтернативы: та же дата, ранжирование по расстоянию Haversine
между точками запроса и кандидата.
"""

from __future__ import annotations

import asyncio
import math
from typing import Optional, Sequence, TypeVar

from src.common.constants import TypeMsg
from src.common.logger import log_debug, log_info, log_warning
from src.core.geo.distance import Coordinates, distance_between
from src.core.geo.service import GeocoderAdapter, canonical_place
from src.core.matching.models import (
    OfferSearchQuery,
    RankedCandidate,
    SearchQuery,
    SearchResult,
    TripSearchQuery,
)
from src.core.rides.models import Offer, Trip
from src.core.rides.repository import OfferRepository, TripRepository

C = TypeVar("C", Offer, Trip)


class CandidateSearch:
    """
    Сервис поиска кандидатов.

    Ничего не хранит между вызовами: каждая выборка читает таблицы
    на дату запроса, координаты кэшируются только в пределах одного поиска.
    """

    def __init__(
        self,
        trips: TripRepository,
        offers: OfferRepository,
        geocoder: GeocoderAdapter,
        max_alternatives: int = 5,
        max_concurrent_geocodes: int = 8,
    ) -> None:
        """
        Args:
            trips: Репозиторий поездок
            offers: Репозиторий предложений
            geocoder: Адаптер геокодирования
            max_alternatives: Сколько альтернатив возвращать
            max_concurrent_geocodes: Ограничение параллельных запросов к геокодеру
        """
        self._trips = trips
        self._offers = offers
        self._geocoder = geocoder
        self._max_alternatives = max_alternatives
        self._max_concurrent = max(1, max_concurrent_geocodes)

    async def search(self, query: SearchQuery) -> SearchResult:
        """Диспетчер по роли запроса."""
        if isinstance(query, TripSearchQuery):
            return await self.search_trips(query)
        return await self.search_offers(query)

    async def search_offers(self, query: OfferSearchQuery) -> SearchResult[Offer]:
        """
        Предложения для пассажира.
        Подходит предложение с seats_available >= party_size
        (и pets=True, если нужны животные).
        """
        offers = await self._offers.list_by_date(query.date)
        eligible = [
            offer for offer in offers
            if offer.seats_available >= query.party_size
            and (offer.pets or not query.pets_required)
        ]
        exact, alternatives = await self._split_and_rank(query, eligible, Offer)
        await log_info(
            f"Поиск предложений {query.origin} -> {query.destination} {query.date}: "
            f"точных {len(exact)}, альтернатив {len(alternatives)}",
            type_msg=TypeMsg.DEBUG,
        )
        return SearchResult[Offer](exact=exact, alternatives=alternatives)

    async def search_trips(self, query: TripSearchQuery) -> SearchResult[Trip]:
        """
        Поездки для водителя.
        Подходит поездка, в которой едут не меньше party_size человек.
        """
        trips = await self._trips.list_by_date(query.date, exclude_user_id=query.excluding_user_id)
        eligible = [
            trip for trip in trips
            if trip.people >= query.party_size
            and (trip.pets or not query.pets_required)
        ]
        exact, alternatives = await self._split_and_rank(query, eligible, Trip)
        await log_info(
            f"Поиск поездок {query.origin} -> {query.destination} {query.date}: "
            f"точных {len(exact)}, альтернатив {len(alternatives)}",
            type_msg=TypeMsg.DEBUG,
        )
        return SearchResult[Trip](exact=exact, alternatives=alternatives)

    # =========================================================================
    # РАНЖИРОВАНИЕ
    # =========================================================================

    async def _split_and_rank(
        self,
        query: OfferSearchQuery | TripSearchQuery,
        candidates: Sequence[C],
        model: type[C],
    ) -> tuple[list[C], list[RankedCandidate[C]]]:
        origin = canonical_place(query.origin)
        destination = canonical_place(query.destination)

        exact: list[C] = []
        rest: list[C] = []
        for candidate in candidates:
            if (
                canonical_place(candidate.origin) == origin
                and canonical_place(candidate.destination) == destination
            ):
                exact.append(candidate)
            else:
                rest.append(candidate)

        if not rest or self._max_alternatives <= 0:
            return exact, []

        coords = await self._geocode_all(
            [query.origin, query.destination]
            + [place for c in rest for place in (c.origin, c.destination)]
        )
        query_origin = coords.get(origin)
        query_destination = coords.get(destination)

        ranked = [
            RankedCandidate[model](
                candidate=candidate,
                distance_to_origin=distance_between(query_origin, coords.get(canonical_place(candidate.origin))),
                distance_to_destination=distance_between(
                    query_destination, coords.get(canonical_place(candidate.destination))
                ),
            )
            for candidate in rest
        ]
        ranked.sort(key=lambda r: (
            r.distance_to_destination,
            r.distance_to_origin,
            r.candidate.date,
            r.candidate.id,
        ))

        unknown = sum(1 for r in ranked if math.isinf(r.distance_to_destination))
        if unknown:
            await log_debug(f"Кандидатов без координат: {unknown} из {len(ranked)}")

        return exact, ranked[:self._max_alternatives]

    async def _geocode_all(self, places: list[str]) -> dict[str, Optional[Coordinates]]:
        """
        Геокодирует каждое уникальное (каноническое) место один раз,
        не более max_concurrent_geocodes запросов одновременно.
        """
        unique: dict[str, str] = {}
        for place in places:
            unique.setdefault(canonical_place(place), place)

        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def bounded(place: str) -> Optional[Coordinates]:
            async with semaphore:
                try:
                    return await self._geocoder.geocode(place)
                except Exception as e:
                    await log_warning(f"Геокодирование '{place}' не удалось: {e}")
                    return None

        results = await asyncio.gather(*(bounded(place) for place in unique.values()))
        return dict(zip(unique.keys(), results))
