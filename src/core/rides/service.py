# src/core/rides/service.py
"""
Сервис поездок и предложений: CRUD владельца и очистка устаревших записей.
"""

from __future__ import annotations

import datetime as dt

from src.common.constants import TypeMsg
from src.common.exceptions import ConflictError, NotFoundError
from src.common.logger import log_info
from src.core.rides.models import Offer, OfferCreateDTO, OfferOverview, Trip, TripCreateDTO
from src.core.rides.repository import OfferRepository, TripRepository
from src.infra.database import DatabaseManager


class RideService:
    """
    Поездки и предложения с проверкой владельца.
    Чужая запись неотличима от несуществующей (NotFoundError).
    """

    def __init__(self, db: DatabaseManager, trips: TripRepository, offers: OfferRepository) -> None:
        self._db = db
        self._trips = trips
        self._offers = offers

    # ===== Поездки =====

    async def create_trip(self, user_id: int, data: TripCreateDTO) -> Trip:
        trip = await self._trips.create(user_id, data)
        await log_info(f"Поездка {trip.id} создана пользователем {user_id}", type_msg=TypeMsg.INFO)
        return trip

    async def list_trips(self, user_id: int) -> list[Trip]:
        return await self._trips.list_by_user(user_id)

    async def update_trip(self, user_id: int, trip_id: int, data: TripCreateDTO) -> Trip:
        """Изменяет поездку; запрещено, если на неё уже принята заявка."""
        async with self._db.transaction() as conn:
            trip = await self._trips.get_by_id(trip_id, conn)
            if trip is None or trip.user_id != user_id:
                raise NotFoundError(f"Поездка {trip_id} не найдена")
            if await self._trips.has_accepted_join(trip_id, conn):
                raise ConflictError(f"Поездка {trip_id} уже подтверждена и не может быть изменена")
            updated = await self._trips.update(trip_id, data, conn)

        if updated is None:
            raise NotFoundError(f"Поездка {trip_id} не найдена")
        return updated

    async def delete_trip(self, user_id: int, trip_id: int) -> None:
        trip = await self._trips.get_by_id(trip_id)
        if trip is None or trip.user_id != user_id:
            raise NotFoundError(f"Поездка {trip_id} не найдена")
        await self._trips.delete(trip_id)
        await log_info(f"Поездка {trip_id} удалена владельцем", type_msg=TypeMsg.INFO)

    # ===== Предложения =====

    async def create_offer(self, user_id: int, data: OfferCreateDTO) -> Offer:
        offer = await self._offers.create(user_id, data)
        await log_info(f"Предложение {offer.id} создано пользователем {user_id}", type_msg=TypeMsg.INFO)
        return offer

    async def list_offers(self, user_id: int) -> list[OfferOverview]:
        return await self._offers.list_by_user(user_id)

    async def update_offer(self, user_id: int, offer_id: int, data: OfferCreateDTO) -> Offer:
        """
        Изменяет предложение. После принятия первой заявки число мест
        меняет только машина состояний заявок.
        """
        async with self._db.transaction() as conn:
            offer = await self._offers.get_by_id(offer_id, conn, for_update=True)
            if offer is None or offer.user_id != user_id:
                raise NotFoundError(f"Предложение {offer_id} не найдено")
            if (
                data.seats_available != offer.seats_available
                and await self._offers.has_accepted_join(offer_id, conn)
            ):
                raise ConflictError("Нельзя менять число мест после принятия заявки")
            updated = await self._offers.update(offer_id, data, conn)

        if updated is None:
            raise NotFoundError(f"Предложение {offer_id} не найдено")
        return updated

    async def delete_offer(self, user_id: int, offer_id: int) -> None:
        offer = await self._offers.get_by_id(offer_id)
        if offer is None or offer.user_id != user_id:
            raise NotFoundError(f"Предложение {offer_id} не найдено")
        await self._offers.delete(offer_id)
        await log_info(f"Предложение {offer_id} удалено владельцем", type_msg=TypeMsg.INFO)

    # ===== Обслуживание =====

    async def sweep_expired(self, today: dt.date) -> tuple[int, int]:
        """
        Удаляет предложения с истёкшим valid_until и прошедшие поездки.

        Returns:
            (удалено предложений, удалено поездок)
        """
        offers_removed = await self._offers.delete_expired(today)
        trips_removed = await self._trips.delete_past(today)
        await log_info(
            f"Очистка устаревших записей на {today}: предложений {offers_removed}, поездок {trips_removed}",
            type_msg=TypeMsg.INFO,
        )
        return offers_removed, trips_removed
