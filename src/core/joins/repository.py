# src/core/joins/repository.py
"""
Репозиторий заявок на присоединение.
"""

from __future__ import annotations

from typing import Optional

from asyncpg import Record

from src.common.constants import JoinStatus, ParentType
from src.common.exceptions import ConflictError
from src.core.joins.models import JoinedRide, JoinRequest
from src.infra.database import DatabaseManager, Executor, affected_rows


JOIN_COLUMNS = "id, user_id, trip_id, offer_id, status, target, seats_taken, created_at"


def canonical_sql(column: str) -> str:
    """SQL-выражение канонического имени места (как canonical_place в Python)."""
    return f"lower(regexp_replace(btrim({column}), '\\s+', ' ', 'g'))"


SAME_ROUTE_SQL = (
    f"{canonical_sql('t.origin')} = {canonical_sql('o.origin')} "
    f"AND {canonical_sql('t.destination')} = {canonical_sql('o.destination')} "
    "AND t.date = o.date"
)


class JoinRepository:
    """Репозиторий заявок."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def get_by_id(
        self,
        join_id: int,
        conn: Executor | None = None,
        for_update: bool = False,
    ) -> Optional[JoinRequest]:
        lock = " FOR UPDATE" if for_update else ""
        row = await (conn or self._db).fetchrow(
            f"SELECT {JOIN_COLUMNS} FROM joins WHERE id = $1{lock}",
            join_id,
        )
        return self._row_to_join(row) if row else None

    async def insert_idempotent(
        self,
        user_id: int,
        trip_id: int | None,
        offer_id: int | None,
        conn: Executor,
        target: ParentType = ParentType.OFFER,
    ) -> tuple[JoinRequest, bool]:
        """
        Создаёт заявку, если такой ещё нет.

        Существующей считается заявка того же пользователя, у которой
        совпадают переданные (не None) trip_id и offer_id: так повторный
        вызов находит и заявку, чью вторую сторону уже заполнила сверка.
        Заявка на поездку (target=TRIP) ищется только по (user_id, trip_id).
        Гонку двух вставок разрешает ограничение joins_natural_key.

        Returns:
            (заявка, создана_ли_сейчас)
        """
        lookup_offer = offer_id if target == ParentType.OFFER else None
        existing = await self._find_existing(user_id, trip_id, lookup_offer, conn)
        if existing is not None:
            return existing, False

        row = await conn.fetchrow(
            f"""
            INSERT INTO joins (user_id, trip_id, offer_id, target, status)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT ON CONSTRAINT joins_natural_key DO NOTHING
            RETURNING {JOIN_COLUMNS}
            """,
            user_id,
            trip_id,
            offer_id,
            target.value,
            JoinStatus.PENDING.value,
        )
        if row is not None:
            return self._row_to_join(row), True

        existing = await self._find_existing(user_id, trip_id, lookup_offer, conn)
        if existing is None:
            raise ConflictError(
                f"Заявка user={user_id} trip={trip_id} offer={offer_id} изменена параллельно, повторите запрос"
            )
        return existing, False

    async def _find_existing(
        self,
        user_id: int,
        trip_id: int | None,
        offer_id: int | None,
        conn: Executor,
    ) -> Optional[JoinRequest]:
        row = await conn.fetchrow(
            f"""
            SELECT {JOIN_COLUMNS} FROM joins
            WHERE user_id = $1
              AND ($2::BIGINT IS NULL OR trip_id = $2)
              AND ($3::BIGINT IS NULL OR offer_id = $3)
            ORDER BY id
            LIMIT 1
            """,
            user_id,
            trip_id,
            offer_id,
        )
        return self._row_to_join(row) if row else None

    async def accepted_offer_for_trip(self, trip_id: int, conn: Executor | None = None) -> Optional[int]:
        """ID предложения из принятой заявки на поездку (наименьший id заявки)."""
        return await (conn or self._db).fetchval(
            """
            SELECT offer_id FROM joins
            WHERE trip_id = $1 AND status = $2 AND offer_id IS NOT NULL
            ORDER BY id
            LIMIT 1
            """,
            trip_id,
            JoinStatus.ACCEPTED.value,
        )

    async def has_other_accepted_for_trip(self, trip_id: int, join_id: int, conn: Executor) -> bool:
        return bool(await conn.fetchval(
            "SELECT EXISTS (SELECT 1 FROM joins WHERE trip_id = $1 AND status = $2 AND id <> $3)",
            trip_id,
            JoinStatus.ACCEPTED.value,
            join_id,
        ))

    async def set_status(
        self,
        join_id: int,
        status: JoinStatus,
        conn: Executor,
        seats_taken: int = 0,
    ) -> Optional[JoinRequest]:
        """
        Переводит заявку из pending в status и запоминает списанные места.
        Возвращает None, если заявка уже не в pending.
        """
        row = await conn.fetchrow(
            f"""
            UPDATE joins SET status = $2, seats_taken = $4
            WHERE id = $1 AND status = $3
            RETURNING {JOIN_COLUMNS}
            """,
            join_id,
            status.value,
            JoinStatus.PENDING.value,
            seats_taken,
        )
        return self._row_to_join(row) if row else None

    async def list_for_parent(
        self,
        user_id: int,
        parent_type: ParentType,
        parent_id: int,
        conn: Executor,
    ) -> list[JoinRequest]:
        """Заявки пользователя на поездку или предложение (строки блокируются)."""
        column = "offer_id" if parent_type == ParentType.OFFER else "trip_id"
        rows = await conn.fetch(
            f"""
            SELECT {JOIN_COLUMNS} FROM joins
            WHERE user_id = $1 AND {column} = $2
            ORDER BY id
            FOR UPDATE
            """,
            user_id,
            parent_id,
        )
        return [self._row_to_join(row) for row in rows]

    async def delete_many(self, join_ids: list[int], conn: Executor) -> int:
        status = await conn.execute("DELETE FROM joins WHERE id = ANY($1::BIGINT[])", join_ids)
        return affected_rows(status)

    async def list_by_user(self, user_id: int) -> list[JoinedRide]:
        """Заявки пользователя с маршрутом предложения (или поездки)."""
        rows = await self._db.fetch(
            """
            SELECT j.id, j.user_id, j.trip_id, j.offer_id, j.status, j.target, j.seats_taken, j.created_at,
                   COALESCE(o.origin, t.origin) AS route_origin,
                   COALESCE(o.destination, t.destination) AS route_destination,
                   COALESCE(o.date, t.date) AS route_date
            FROM joins j
            LEFT JOIN offers o ON o.id = j.offer_id
            LEFT JOIN trips t ON t.id = j.trip_id
            WHERE j.user_id = $1
            ORDER BY j.created_at DESC, j.id DESC
            """,
            user_id,
        )
        return [
            JoinedRide(
                join=self._row_to_join(row),
                origin=row["route_origin"],
                destination=row["route_destination"],
                date=row["route_date"],
            )
            for row in rows
        ]

    # =========================================================================
    # СВЕРКА СВЯЗЕЙ
    # =========================================================================

    async def list_unlinked_ids(self) -> list[int]:
        """Заявки, у которых известна только одна из сторон."""
        rows = await self._db.fetch(
            """
            SELECT id FROM joins
            WHERE (trip_id IS NULL AND offer_id IS NOT NULL)
               OR (offer_id IS NULL AND trip_id IS NOT NULL)
            ORDER BY id
            """
        )
        return [row["id"] for row in rows]

    async def find_trip_for_offer_join(self, join_id: int) -> Optional[int]:
        """
        Поездка автора заявки с тем же маршрутом и датой, что у предложения.
        При нескольких кандидатах берётся наименьший id.
        """
        return await self._db.fetchval(
            f"""
            SELECT t.id
            FROM joins j
            JOIN offers o ON o.id = j.offer_id
            JOIN trips t ON t.user_id = j.user_id AND {SAME_ROUTE_SQL}
            WHERE j.id = $1 AND j.trip_id IS NULL
            ORDER BY t.id
            LIMIT 1
            """,
            join_id,
        )

    async def find_offer_for_trip_join(self, join_id: int) -> Optional[int]:
        """
        Предложение с тем же маршрутом и датой, что у поездки заявки.
        Предложения владельца поездки не рассматриваются; предложения
        автора заявки имеют приоритет, далее наименьший id.
        """
        return await self._db.fetchval(
            f"""
            SELECT o.id
            FROM joins j
            JOIN trips t ON t.id = j.trip_id
            JOIN offers o ON o.user_id <> t.user_id AND {SAME_ROUTE_SQL}
            WHERE j.id = $1 AND j.offer_id IS NULL
            ORDER BY (o.user_id = j.user_id) DESC, o.id
            LIMIT 1
            """,
            join_id,
        )

    async def fill_trip_id(self, join_id: int, trip_id: int) -> bool:
        """Условно заполняет trip_id; False, если его уже заполнили."""
        status = await self._db.execute(
            "UPDATE joins SET trip_id = $2 WHERE id = $1 AND trip_id IS NULL",
            join_id,
            trip_id,
        )
        return affected_rows(status) > 0

    async def fill_offer_id(self, join_id: int, offer_id: int) -> bool:
        """Условно заполняет offer_id; False, если его уже заполнили."""
        status = await self._db.execute(
            "UPDATE joins SET offer_id = $2 WHERE id = $1 AND offer_id IS NULL",
            join_id,
            offer_id,
        )
        return affected_rows(status) > 0

    @staticmethod
    def _row_to_join(row: Record) -> JoinRequest:
        return JoinRequest(
            id=row["id"],
            user_id=row["user_id"],
            trip_id=row["trip_id"],
            offer_id=row["offer_id"],
            status=row["status"],
            target=row["target"],
            seats_taken=row["seats_taken"],
            created_at=row["created_at"],
        )
