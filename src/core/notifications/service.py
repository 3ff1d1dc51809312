# src/core/notifications/service.py
"""
Сервис уведомлений.
Запись уведомления идёт в транзакции перехода статуса заявки,
публикация события в шину после коммита.
"""

from __future__ import annotations

from src.common.constants import TypeMsg
from src.common.exceptions import NotFoundError
from src.common.localization import get_text
from src.common.logger import log_info
from src.core.notifications.models import Notification, NotificationDraft, NotificationView
from src.core.notifications.repository import NotificationRepository
from src.infra.database import Executor
from src.infra.event_bus import DomainEvent, EventBus, EventTypes


class NotificationService:
    """
    Сервис уведомлений.

    Args:
        repository: Репозиторий уведомлений
        event_bus: Шина событий (None: без публикации)
        language: Язык текстов уведомлений
    """

    def __init__(
        self,
        repository: NotificationRepository,
        event_bus: EventBus | None = None,
        language: str = "pl",
    ) -> None:
        self._repository = repository
        self._event_bus = event_bus
        self._language = language

    def render(self, draft: NotificationDraft) -> str:
        """Формирует текст уведомления."""
        return get_text(draft.message_key, self._language, **draft.params)

    async def emit(self, draft: NotificationDraft, conn: Executor) -> Notification:
        """
        Сохраняет уведомление в рамках транзакции вызывающего.

        Args:
            draft: Получатель, ключ текста и связанные записи
            conn: Соединение открытой транзакции
        """
        notification = await self._repository.create(
            user_id=draft.user_id,
            message=self.render(draft),
            join_id=draft.join_id,
            trip_id=draft.trip_id,
            offer_id=draft.offer_id,
            conn=conn,
        )
        await log_info(
            f"Уведомление {notification.id} для user={draft.user_id}: {draft.message_key}",
            type_msg=TypeMsg.DEBUG,
        )
        return notification

    async def publish(self, notification: Notification) -> None:
        """Публикует notification.created (вызывать после коммита)."""
        if self._event_bus is None:
            return
        await self._event_bus.publish(DomainEvent(
            event_type=EventTypes.NOTIFICATION_CREATED,
            payload={
                "notification_id": notification.id,
                "user_id": notification.user_id,
                "join_id": notification.join_id,
            },
        ))

    async def list_for_user(self, user_id: int) -> list[NotificationView]:
        return await self._repository.list_by_user(user_id)

    async def mark_read(self, user_id: int, notification_id: int) -> None:
        if not await self._repository.mark_read(user_id, notification_id):
            raise NotFoundError(f"Уведомление {notification_id} не найдено")

    async def discard_for_joins(self, join_ids: list[int], conn: Executor) -> int:
        """Удаляет уведомления удаляемых заявок (в транзакции вызывающего)."""
        return await self._repository.delete_for_joins(join_ids, conn)
