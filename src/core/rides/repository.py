# src/core/rides/repository.py
"""
Репозитории поездок и предложений.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from asyncpg import Record

from src.common.constants import JoinStatus
from src.core.rides.models import Offer, OfferCreateDTO, OfferOverview, Trip, TripCreateDTO
from src.infra.database import DatabaseManager, Executor, affected_rows


TRIP_COLUMNS = """
    id, user_id, origin, destination, date, people,
    purpose, luggage, pets, type, created_at
"""

OFFER_COLUMNS = """
    id, user_id, origin, destination, date, price, vehicle_type,
    seats_available, luggage, pets, notes, valid_until, created_at
"""


class TripRepository:
    """Репозиторий поездок пассажиров."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def get_by_id(self, trip_id: int, conn: Executor | None = None) -> Optional[Trip]:
        row = await (conn or self._db).fetchrow(
            f"SELECT {TRIP_COLUMNS} FROM trips WHERE id = $1",
            trip_id,
        )
        return self._row_to_trip(row) if row else None

    async def list_by_user(self, user_id: int) -> list[Trip]:
        rows = await self._db.fetch(
            f"SELECT {TRIP_COLUMNS} FROM trips WHERE user_id = $1 ORDER BY date, id",
            user_id,
        )
        return [self._row_to_trip(row) for row in rows]

    async def list_by_date(self, day: dt.date, exclude_user_id: int | None = None) -> list[Trip]:
        """
        Поездки на указанную дату.

        Args:
            day: Дата поездки
            exclude_user_id: Не возвращать поездки этого пользователя
        """
        rows = await self._db.fetch(
            f"""
            SELECT {TRIP_COLUMNS} FROM trips
            WHERE date = $1
              AND ($2::BIGINT IS NULL OR user_id <> $2)
            ORDER BY id
            """,
            day,
            exclude_user_id,
        )
        return [self._row_to_trip(row) for row in rows]

    async def create(self, user_id: int, data: TripCreateDTO) -> Trip:
        row = await self._db.fetchrow(
            f"""
            INSERT INTO trips (user_id, origin, destination, date, people, purpose, luggage, pets)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING {TRIP_COLUMNS}
            """,
            user_id,
            data.origin,
            data.destination,
            data.date,
            data.people,
            data.purpose,
            data.luggage,
            data.pets,
        )
        return self._row_to_trip(row)

    async def update(self, trip_id: int, data: TripCreateDTO, conn: Executor | None = None) -> Optional[Trip]:
        row = await (conn or self._db).fetchrow(
            f"""
            UPDATE trips
            SET origin = $2, destination = $3, date = $4, people = $5,
                purpose = $6, luggage = $7, pets = $8
            WHERE id = $1
            RETURNING {TRIP_COLUMNS}
            """,
            trip_id,
            data.origin,
            data.destination,
            data.date,
            data.people,
            data.purpose,
            data.luggage,
            data.pets,
        )
        return self._row_to_trip(row) if row else None

    async def delete(self, trip_id: int) -> bool:
        status = await self._db.execute("DELETE FROM trips WHERE id = $1", trip_id)
        return affected_rows(status) > 0

    async def has_accepted_join(self, trip_id: int, conn: Executor | None = None) -> bool:
        """Есть ли у поездки принятая заявка (поездка заблокирована для изменений)."""
        return bool(await (conn or self._db).fetchval(
            "SELECT EXISTS (SELECT 1 FROM joins WHERE trip_id = $1 AND status = $2)",
            trip_id,
            JoinStatus.ACCEPTED.value,
        ))

    async def delete_past(self, today: dt.date) -> int:
        """Удаляет поездки с датой раньше today. Возвращает число удалённых."""
        status = await self._db.execute("DELETE FROM trips WHERE date < $1", today)
        return affected_rows(status)

    @staticmethod
    def _row_to_trip(row: Record) -> Trip:
        return Trip(**dict(row))


class OfferRepository:
    """Репозиторий предложений водителей."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def get_by_id(
        self,
        offer_id: int,
        conn: Executor | None = None,
        for_update: bool = False,
    ) -> Optional[Offer]:
        """
        Получает предложение по ID.

        Args:
            offer_id: ID предложения
            conn: Соединение открытой транзакции
            for_update: Заблокировать строку до конца транзакции
        """
        lock = " FOR UPDATE" if for_update else ""
        row = await (conn or self._db).fetchrow(
            f"SELECT {OFFER_COLUMNS} FROM offers WHERE id = $1{lock}",
            offer_id,
        )
        return self._row_to_offer(row) if row else None

    async def list_by_user(self, user_id: int) -> list[OfferOverview]:
        """Предложения водителя с числом мест, занятых принятыми заявками."""
        rows = await self._db.fetch(
            """
            SELECT o.id, o.user_id, o.origin, o.destination, o.date, o.price, o.vehicle_type,
                   o.seats_available, o.luggage, o.pets, o.notes, o.valid_until, o.created_at,
                   COALESCE((
                       SELECT SUM(j.seats_taken)
                       FROM joins j
                       WHERE j.offer_id = o.id AND j.status = $2
                   ), 0)::INT AS passengers_count
            FROM offers o
            WHERE o.user_id = $1
            ORDER BY o.date, o.id
            """,
            user_id,
            JoinStatus.ACCEPTED.value,
        )
        return [OfferOverview(**dict(row)) for row in rows]

    async def list_by_date(self, day: dt.date, exclude_user_id: int | None = None) -> list[Offer]:
        rows = await self._db.fetch(
            f"""
            SELECT {OFFER_COLUMNS} FROM offers
            WHERE date = $1
              AND ($2::BIGINT IS NULL OR user_id <> $2)
            ORDER BY id
            """,
            day,
            exclude_user_id,
        )
        return [self._row_to_offer(row) for row in rows]

    async def create(self, user_id: int, data: OfferCreateDTO) -> Offer:
        row = await self._db.fetchrow(
            f"""
            INSERT INTO offers (user_id, origin, destination, date, price, vehicle_type,
                                seats_available, luggage, pets, notes, valid_until)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
            RETURNING {OFFER_COLUMNS}
            """,
            user_id,
            data.origin,
            data.destination,
            data.date,
            data.price,
            data.vehicle_type,
            data.seats_available,
            data.luggage,
            data.pets,
            data.notes,
            data.valid_until,
        )
        return self._row_to_offer(row)

    async def update(self, offer_id: int, data: OfferCreateDTO, conn: Executor | None = None) -> Optional[Offer]:
        row = await (conn or self._db).fetchrow(
            f"""
            UPDATE offers
            SET origin = $2, destination = $3, date = $4, price = $5, vehicle_type = $6,
                seats_available = $7, luggage = $8, pets = $9, notes = $10, valid_until = $11
            WHERE id = $1
            RETURNING {OFFER_COLUMNS}
            """,
            offer_id,
            data.origin,
            data.destination,
            data.date,
            data.price,
            data.vehicle_type,
            data.seats_available,
            data.luggage,
            data.pets,
            data.notes,
            data.valid_until,
        )
        return self._row_to_offer(row) if row else None

    async def delete(self, offer_id: int) -> bool:
        status = await self._db.execute("DELETE FROM offers WHERE id = $1", offer_id)
        return affected_rows(status) > 0

    async def has_accepted_join(self, offer_id: int, conn: Executor | None = None) -> bool:
        return bool(await (conn or self._db).fetchval(
            "SELECT EXISTS (SELECT 1 FROM joins WHERE offer_id = $1 AND status = $2)",
            offer_id,
            JoinStatus.ACCEPTED.value,
        ))

    async def take_seats(self, offer_id: int, seats: int, conn: Executor) -> Optional[int]:
        """
        Условно списывает места.

        Returns:
            Остаток мест или None, если мест не хватило (строка не изменена)
        """
        return await conn.fetchval(
            """
            UPDATE offers
            SET seats_available = seats_available - $2
            WHERE id = $1 AND seats_available >= $2
            RETURNING seats_available
            """,
            offer_id,
            seats,
        )

    async def release_seats(self, offer_id: int, seats: int, conn: Executor) -> Optional[int]:
        """Возвращает места в предложение. None, если предложения уже нет."""
        return await conn.fetchval(
            """
            UPDATE offers
            SET seats_available = seats_available + $2
            WHERE id = $1
            RETURNING seats_available
            """,
            offer_id,
            seats,
        )

    async def delete_expired(self, today: dt.date) -> int:
        """Удаляет предложения с valid_until раньше today."""
        status = await self._db.execute(
            "DELETE FROM offers WHERE valid_until IS NOT NULL AND valid_until < $1",
            today,
        )
        return affected_rows(status)

    @staticmethod
    def _row_to_offer(row: Record) -> Offer:
        return Offer(**dict(row))
