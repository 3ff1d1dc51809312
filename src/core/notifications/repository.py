# src/core/notifications/repository.py
"""
Репозиторий уведомлений.
"""

from __future__ import annotations

from src.core.notifications.models import Notification, NotificationView
from src.infra.database import DatabaseManager, Executor, affected_rows


NOTIFICATION_COLUMNS = "id, user_id, join_id, trip_id, offer_id, message, read, created_at"


class NotificationRepository:
    """Репозиторий уведомлений."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def create(
        self,
        user_id: int,
        message: str,
        join_id: int | None,
        trip_id: int | None,
        offer_id: int | None,
        conn: Executor | None = None,
    ) -> Notification:
        row = await (conn or self._db).fetchrow(
            f"""
            INSERT INTO notifications (user_id, join_id, trip_id, offer_id, message, read)
            VALUES ($1, $2, $3, $4, $5, FALSE)
            RETURNING {NOTIFICATION_COLUMNS}
            """,
            user_id,
            join_id,
            trip_id,
            offer_id,
            message,
        )
        return Notification(**dict(row))

    async def list_by_user(self, user_id: int) -> list[NotificationView]:
        rows = await self._db.fetch(
            """
            SELECT n.id, n.user_id, n.join_id, n.trip_id, n.offer_id,
                   n.message, n.read, n.created_at, j.status AS join_status
            FROM notifications n
            LEFT JOIN joins j ON j.id = n.join_id
            WHERE n.user_id = $1
            ORDER BY n.created_at DESC, n.id DESC
            """,
            user_id,
        )
        return [NotificationView(**dict(row)) for row in rows]

    async def mark_read(self, user_id: int, notification_id: int) -> bool:
        """Отмечает уведомление прочитанным; только для получателя."""
        status = await self._db.execute(
            "UPDATE notifications SET read = TRUE WHERE id = $1 AND user_id = $2",
            notification_id,
            user_id,
        )
        return affected_rows(status) > 0

    async def delete_for_joins(self, join_ids: list[int], conn: Executor) -> int:
        status = await conn.execute(
            "DELETE FROM notifications WHERE join_id = ANY($1::BIGINT[])",
            join_ids,
        )
        return affected_rows(status)

