# src/core/joins/service.py
"""
Сервис заявок на присоединение.

Создание (идемпотентное), принятие с учётом мест, отклонение и выход.
Все изменения статуса, мест и запись уведомления выполняются в одной
транзакции; события в шину публикуются после коммита.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from src.common.constants import JoinStatus, ParentType, TypeMsg
from src.common.exceptions import CapacityExceededError, ConflictError, ForbiddenError, NotFoundError
from src.common.logger import log_info
from src.core.joins.models import JoinedRide, JoinRequest
from src.core.joins.reconciler import LinkReconciler
from src.core.joins.repository import JoinRepository
from src.core.joins.state_machine import JoinStateMachine
from src.core.notifications.models import Notification, NotificationDraft
from src.core.notifications.service import NotificationService
from src.core.rides.models import Offer, Trip
from src.core.rides.repository import OfferRepository, TripRepository
from src.infra.database import DatabaseManager, Executor
from src.infra.event_bus import DomainEvent, EventBus, EventTypes


def route_params(record: Trip | Offer) -> dict[str, Any]:
    """Параметры шаблона уведомления: откуда, куда, когда."""
    return {
        "origin": record.origin,
        "destination": record.destination,
        "date": record.date.isoformat(),
    }


class JoinService:
    """
    Машина состояний заявок.

    Args:
        db: Менеджер БД (для транзакций)
        trips: Репозиторий поездок
        offers: Репозиторий предложений
        joins: Репозиторий заявок
        notifications: Сервис уведомлений
        reconciler: Сверка связей, вызывается для новой заявки
        event_bus: Шина событий (None: без публикации)
        restore_seats_on_leave: Возвращать места при выходе из принятой заявки
    """

    def __init__(
        self,
        db: DatabaseManager,
        trips: TripRepository,
        offers: OfferRepository,
        joins: JoinRepository,
        notifications: NotificationService,
        reconciler: LinkReconciler,
        event_bus: EventBus | None = None,
        restore_seats_on_leave: bool = True,
    ) -> None:
        self._db = db
        self._trips = trips
        self._offers = offers
        self._joins = joins
        self._notifications = notifications
        self._reconciler = reconciler
        self._event_bus = event_bus
        self._restore_seats_on_leave = restore_seats_on_leave

    # =========================================================================
    # СОЗДАНИЕ
    # =========================================================================

    async def create_join_on_trip(self, user_id: int, trip_id: int) -> int:
        """
        Предложение поездки пассажиру (обычно от водителя).

        Если на поездку уже есть принятая заявка с предложением,
        новая заявка сразу получает этот offer_id.

        Returns:
            ID заявки (существующей при повторном вызове)
        """
        trip = await self._trips.get_by_id(trip_id)
        if trip is None:
            raise NotFoundError(f"Поездка {trip_id} не найдена")
        if trip.user_id == user_id:
            raise ForbiddenError("Нельзя отправить заявку на собственную поездку")

        offer_id = await self._joins.accepted_offer_for_trip(trip_id)

        notification: Notification | None = None
        try:
            async with self._db.transaction() as conn:
                join, created = await self._joins.insert_idempotent(
                    user_id, trip_id, offer_id, conn, target=ParentType.TRIP,
                )
                if created:
                    notification = await self._notifications.emit(NotificationDraft(
                        user_id=trip.user_id,
                        message_key="JOIN_TRIP_PROPOSED",
                        params=route_params(trip),
                        join_id=join.id,
                        trip_id=trip.id,
                        offer_id=offer_id,
                    ), conn)
        except asyncpg.ForeignKeyViolationError as e:
            raise NotFoundError(f"Поездка {trip_id} удалена") from e

        await self._after_create(join, created, notification)
        return join.id

    async def create_join_on_offer(self, user_id: int, offer_id: int, trip_id: int | None = None) -> int:
        """
        Заявка пассажира на предложение водителя.
        Идемпотентна по (user_id, trip_id, offer_id): повторный вызов
        возвращает ту же заявку без нового уведомления.

        Returns:
            ID заявки
        """
        offer = await self._offers.get_by_id(offer_id)
        if offer is None:
            raise NotFoundError(f"Предложение {offer_id} не найдено")
        if offer.user_id == user_id:
            raise ForbiddenError("Нельзя отправить заявку на собственное предложение")

        if trip_id is not None:
            trip = await self._trips.get_by_id(trip_id)
            if trip is None:
                raise NotFoundError(f"Поездка {trip_id} не найдена")
            if trip.user_id != user_id:
                raise ForbiddenError("Можно прикрепить только собственную поездку")

        notification: Notification | None = None
        try:
            async with self._db.transaction() as conn:
                join, created = await self._joins.insert_idempotent(
                    user_id, trip_id, offer_id, conn, target=ParentType.OFFER,
                )
                if created:
                    notification = await self._notifications.emit(NotificationDraft(
                        user_id=offer.user_id,
                        message_key="JOIN_OFFER_REQUESTED",
                        params=route_params(offer),
                        join_id=join.id,
                        trip_id=trip_id,
                        offer_id=offer.id,
                    ), conn)
        except asyncpg.ForeignKeyViolationError as e:
            raise NotFoundError(f"Предложение {offer_id} или поездка {trip_id} удалены") from e

        await self._after_create(join, created, notification)
        return join.id

    async def _after_create(self, join: JoinRequest, created: bool, notification: Notification | None) -> None:
        if not created:
            await log_info(f"Заявка {join.id} уже существует, повторное создание пропущено", type_msg=TypeMsg.DEBUG)
            return

        await log_info(
            f"Создана заявка {join.id}: user={join.user_id}, trip={join.trip_id}, offer={join.offer_id}",
            type_msg=TypeMsg.INFO,
        )
        await self._reconciler.reconcile_join(join.id)
        if notification is not None:
            await self._notifications.publish(notification)
        await self._publish(EventTypes.JOIN_CREATED, join)

    # =========================================================================
    # ПРИНЯТИЕ / ОТКЛОНЕНИЕ
    # =========================================================================

    async def accept_join(self, acting_user_id: int, join_id: int) -> JoinRequest:
        """
        Принимает заявку.

        Места списываются с привязанного предложения, если его владелец
        автор заявки или принимающий: размер группы связанной поездки или 1.
        Списанное количество сохраняется в заявке. Списание, смена статуса
        и уведомление автору заявки выполняются атомарно.

        Raises:
            NotFoundError: Заявка или родительская запись не найдены
            ForbiddenError: Пользователь не владелец родительской записи
            ConflictError: Заявка не в pending или на поездку уже принята другая
            CapacityExceededError: Недостаточно мест
        """
        async with self._db.transaction() as conn:
            join, trip, offer = await self._load_for_decision(join_id, conn)
            parent_type = self._authorize(join, trip, offer, acting_user_id)
            JoinStateMachine.ensure_transition(join.status, JoinStatus.ACCEPTED)

            if trip is not None and await self._joins.has_other_accepted_for_trip(trip.id, join.id, conn):
                raise ConflictError(f"На поездку {trip.id} уже принята другая заявка")

            seats_taken = 0
            if offer is not None and offer.user_id in (join.user_id, acting_user_id):
                required = trip.people if trip is not None else 1
                remaining = await self._offers.take_seats(offer.id, required, conn)
                if remaining is None:
                    raise CapacityExceededError(
                        f"Недостаточно мест: нужно {required}, доступно {offer.seats_available}",
                        required=required,
                        available=offer.seats_available,
                    )
                seats_taken = required

            updated = await self._joins.set_status(join.id, JoinStatus.ACCEPTED, conn, seats_taken=seats_taken)
            if updated is None:
                raise ConflictError(f"Заявка {join.id} уже обработана")

            notification = await self._notifications.emit(NotificationDraft(
                user_id=join.user_id,
                message_key=f"JOIN_{parent_type.value.upper()}_ACCEPTED",
                join_id=join.id,
                trip_id=join.trip_id,
                offer_id=join.offer_id,
            ), conn)

        await log_info(f"Заявка {join_id} принята пользователем {acting_user_id}", type_msg=TypeMsg.INFO)
        await self._notifications.publish(notification)
        await self._publish(EventTypes.JOIN_ACCEPTED, updated)
        return updated

    async def reject_join(self, acting_user_id: int, join_id: int) -> JoinRequest:
        """
        Отклоняет заявку. Места не меняются.

        Raises:
            NotFoundError, ForbiddenError, ConflictError
        """
        async with self._db.transaction() as conn:
            join, trip, offer = await self._load_for_decision(join_id, conn)
            parent_type = self._authorize(join, trip, offer, acting_user_id)
            JoinStateMachine.ensure_transition(join.status, JoinStatus.REJECTED)

            updated = await self._joins.set_status(join.id, JoinStatus.REJECTED, conn)
            if updated is None:
                raise ConflictError(f"Заявка {join.id} уже обработана")

            notification = await self._notifications.emit(NotificationDraft(
                user_id=join.user_id,
                message_key=f"JOIN_{parent_type.value.upper()}_REJECTED",
                join_id=join.id,
                trip_id=join.trip_id,
                offer_id=join.offer_id,
            ), conn)

        await log_info(f"Заявка {join_id} отклонена пользователем {acting_user_id}", type_msg=TypeMsg.INFO)
        await self._notifications.publish(notification)
        await self._publish(EventTypes.JOIN_REJECTED, updated)
        return updated

    async def _load_for_decision(
        self,
        join_id: int,
        conn: Executor,
    ) -> tuple[JoinRequest, Trip | None, Offer | None]:
        """Загружает и блокирует заявку и предложение до конца транзакции."""
        join = await self._joins.get_by_id(join_id, conn, for_update=True)
        if join is None:
            raise NotFoundError(f"Заявка {join_id} не найдена")

        offer = None
        if join.offer_id is not None:
            offer = await self._offers.get_by_id(join.offer_id, conn, for_update=True)
            if offer is None:
                raise NotFoundError(f"Предложение {join.offer_id} не найдено")

        trip = None
        if join.trip_id is not None:
            trip = await self._trips.get_by_id(join.trip_id, conn)
            if trip is None:
                raise NotFoundError(f"Поездка {join.trip_id} не найдена")

        return join, trip, offer

    @staticmethod
    def _authorize(join: JoinRequest, trip: Trip | None, offer: Offer | None, acting_user_id: int) -> ParentType:
        """
        Решение принимает владелец записи, на которую подана заявка.
        Связи, добавленные сверкой, на это не влияют.

        Returns:
            Тип родительской записи, от имени которой принято решение
        """
        parent = offer if join.target == ParentType.OFFER else trip
        if parent is None:
            raise NotFoundError(f"У заявки {join.id} нет записи {join.target.value}")

        if parent.user_id != acting_user_id:
            raise ForbiddenError(f"Пользователь {acting_user_id} не владелец записи заявки {join.id}")
        return join.target

    # =========================================================================
    # ВЫХОД И СПИСКИ
    # =========================================================================

    async def leave_join(self, user_id: int, parent_type: ParentType, parent_id: int) -> int:
        """
        Удаляет заявки пользователя на поездку/предложение вместе с их уведомлениями.
        При включённой политике возвращает в предложение ровно те места,
        которые были списаны при принятии.

        Returns:
            Число удалённых заявок
        """
        async with self._db.transaction() as conn:
            joins = await self._joins.list_for_parent(user_id, parent_type, parent_id, conn)
            if not joins:
                raise NotFoundError(f"Нет заявок пользователя {user_id} на {parent_type.value} {parent_id}")

            join_ids = [join.id for join in joins]
            await self._notifications.discard_for_joins(join_ids, conn)

            if self._restore_seats_on_leave:
                for join in joins:
                    if join.status == JoinStatus.ACCEPTED and join.seats_taken and join.offer_id is not None:
                        await self._offers.release_seats(join.offer_id, join.seats_taken, conn)

            removed = await self._joins.delete_many(join_ids, conn)

        await log_info(
            f"Пользователь {user_id} покинул {parent_type.value} {parent_id}: удалено заявок {removed}",
            type_msg=TypeMsg.INFO,
        )
        for join in joins:
            await self._publish(EventTypes.JOIN_LEFT, join)
        return removed

    async def list_joined(self, user_id: int) -> list[JoinedRide]:
        """Заявки пользователя с маршрутом и статусом."""
        return await self._joins.list_by_user(user_id)

    async def _publish(self, event_type: str, join: JoinRequest) -> None:
        if self._event_bus is None:
            return
        await self._event_bus.publish(DomainEvent(
            event_type=event_type,
            payload={
                "join_id": join.id,
                "user_id": join.user_id,
                "trip_id": join.trip_id,
                "offer_id": join.offer_id,
                "target": join.target.value,
                "status": join.status.value,
            },
        ))
