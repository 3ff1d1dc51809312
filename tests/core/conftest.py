# tests/core/conftest.py
"""
In-memory хранилище для сценарных тестов заявок.

FakeDatabase.transaction() сериализует транзакции (как блокировки строк)
и откатывает все изменения хранилища при исключении.
"""

from __future__ import annotations

import asyncio
import copy
import datetime as dt
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from src.common.constants import JoinStatus, ParentType
from src.core.geo.service import canonical_place
from src.core.joins.chat import ChatRoomResolver
from src.core.joins.models import JoinRequest
from src.core.joins.reconciler import LinkReconciler
from src.core.joins.service import JoinService
from src.core.notifications.models import Notification, NotificationView
from src.core.notifications.service import NotificationService
from src.core.rides.models import Offer, Trip

DAY = dt.date(2024, 6, 1)


@dataclass
class FakeStore:
    trips: dict[int, Trip] = field(default_factory=dict)
    offers: dict[int, Offer] = field(default_factory=dict)
    joins: dict[int, JoinRequest] = field(default_factory=dict)
    notifications: dict[int, Notification] = field(default_factory=dict)
    next_id: int = 1

    def new_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value

    def add_trip(
        self,
        user_id: int,
        origin: str = "Warsaw",
        destination: str = "Krakow",
        date: dt.date = DAY,
        people: int = 1,
        pets: bool = False,
    ) -> Trip:
        trip = Trip(
            id=self.new_id(), user_id=user_id, origin=origin, destination=destination,
            date=date, people=people, pets=pets,
        )
        self.trips[trip.id] = trip
        return trip

    def add_offer(
        self,
        user_id: int,
        origin: str = "Warsaw",
        destination: str = "Krakow",
        date: dt.date = DAY,
        seats: int = 3,
        pets: bool = False,
    ) -> Offer:
        offer = Offer(
            id=self.new_id(), user_id=user_id, origin=origin, destination=destination,
            date=date, seats_available=seats, pets=pets,
        )
        self.offers[offer.id] = offer
        return offer

    def add_join(
        self,
        user_id: int,
        trip_id: int | None = None,
        offer_id: int | None = None,
        status: JoinStatus = JoinStatus.PENDING,
        target: ParentType | None = None,
        seats_taken: int = 0,
    ) -> JoinRequest:
        if target is None:
            target = ParentType.OFFER if offer_id is not None else ParentType.TRIP
        join = JoinRequest(
            id=self.new_id(), user_id=user_id, trip_id=trip_id, offer_id=offer_id,
            status=status, target=target, seats_taken=seats_taken,
        )
        self.joins[join.id] = join
        return join

    def restore(self, snapshot: "FakeStore") -> None:
        self.trips = snapshot.trips
        self.offers = snapshot.offers
        self.joins = snapshot.joins
        self.notifications = snapshot.notifications
        self.next_id = snapshot.next_id


class FakeDatabase:
    """Заменяет DatabaseManager: поддерживает только transaction()."""

    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self):
        async with self._lock:
            snapshot = copy.deepcopy(self.store)
            try:
                yield self
            except BaseException:
                self.store.restore(snapshot)
                raise


class FakeTripRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_by_id(self, trip_id: int, conn=None) -> Optional[Trip]:
        return self.store.trips.get(trip_id)

    async def has_accepted_join(self, trip_id: int, conn=None) -> bool:
        return any(
            j.trip_id == trip_id and j.status == JoinStatus.ACCEPTED
            for j in self.store.joins.values()
        )


class FakeOfferRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_by_id(self, offer_id: int, conn=None, for_update: bool = False) -> Optional[Offer]:
        return self.store.offers.get(offer_id)

    async def take_seats(self, offer_id: int, seats: int, conn) -> Optional[int]:
        offer = self.store.offers.get(offer_id)
        if offer is None or offer.seats_available < seats:
            return None
        self.store.offers[offer_id] = offer.model_copy(update={"seats_available": offer.seats_available - seats})
        return offer.seats_available - seats

    async def release_seats(self, offer_id: int, seats: int, conn) -> Optional[int]:
        offer = self.store.offers.get(offer_id)
        if offer is None:
            return None
        self.store.offers[offer_id] = offer.model_copy(update={"seats_available": offer.seats_available + seats})
        return offer.seats_available + seats


def _same_route(a: Trip | Offer, b: Trip | Offer) -> bool:
    return (
        canonical_place(a.origin) == canonical_place(b.origin)
        and canonical_place(a.destination) == canonical_place(b.destination)
        and a.date == b.date
    )


class FakeJoinRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_by_id(self, join_id: int, conn=None, for_update: bool = False) -> Optional[JoinRequest]:
        return self.store.joins.get(join_id)

    async def insert_idempotent(self, user_id, trip_id, offer_id, conn, target: ParentType = ParentType.OFFER):
        lookup_offer = offer_id if target == ParentType.OFFER else None
        for join in sorted(self.store.joins.values(), key=lambda j: j.id):
            if (
                join.user_id == user_id
                and (trip_id is None or join.trip_id == trip_id)
                and (lookup_offer is None or join.offer_id == lookup_offer)
            ):
                return join, False
        return self.store.add_join(user_id, trip_id, offer_id, target=target), True

    async def accepted_offer_for_trip(self, trip_id: int, conn=None) -> Optional[int]:
        for join in sorted(self.store.joins.values(), key=lambda j: j.id):
            if join.trip_id == trip_id and join.status == JoinStatus.ACCEPTED and join.offer_id is not None:
                return join.offer_id
        return None

    async def has_other_accepted_for_trip(self, trip_id: int, join_id: int, conn) -> bool:
        return any(
            j.trip_id == trip_id and j.status == JoinStatus.ACCEPTED and j.id != join_id
            for j in self.store.joins.values()
        )

    async def set_status(self, join_id: int, status: JoinStatus, conn, seats_taken: int = 0) -> Optional[JoinRequest]:
        join = self.store.joins.get(join_id)
        if join is None or join.status != JoinStatus.PENDING:
            return None
        updated = join.model_copy(update={"status": status, "seats_taken": seats_taken})
        self.store.joins[join_id] = updated
        return updated

    async def list_for_parent(self, user_id: int, parent_type: ParentType, parent_id: int, conn) -> list[JoinRequest]:
        column = "offer_id" if parent_type == ParentType.OFFER else "trip_id"
        return sorted(
            (j for j in self.store.joins.values() if j.user_id == user_id and getattr(j, column) == parent_id),
            key=lambda j: j.id,
        )

    async def delete_many(self, join_ids: list[int], conn) -> int:
        removed = 0
        for join_id in join_ids:
            if self.store.joins.pop(join_id, None) is not None:
                removed += 1
        return removed

    async def list_unlinked_ids(self) -> list[int]:
        return sorted(
            j.id for j in self.store.joins.values()
            if (j.trip_id is None) != (j.offer_id is None)
        )

    async def find_trip_for_offer_join(self, join_id: int) -> Optional[int]:
        join = self.store.joins.get(join_id)
        if join is None or join.trip_id is not None or join.offer_id is None:
            return None
        offer = self.store.offers[join.offer_id]
        candidates = [
            t.id for t in self.store.trips.values()
            if t.user_id == join.user_id and _same_route(t, offer)
        ]
        return min(candidates) if candidates else None

    async def find_offer_for_trip_join(self, join_id: int) -> Optional[int]:
        join = self.store.joins.get(join_id)
        if join is None or join.offer_id is not None or join.trip_id is None:
            return None
        trip = self.store.trips[join.trip_id]
        candidates = [
            o for o in self.store.offers.values()
            if o.user_id != trip.user_id and _same_route(trip, o)
        ]
        if not candidates:
            return None
        candidates.sort(key=lambda o: (o.user_id != join.user_id, o.id))
        return candidates[0].id

    async def fill_trip_id(self, join_id: int, trip_id: int) -> bool:
        join = self.store.joins.get(join_id)
        if join is None or join.trip_id is not None:
            return False
        self.store.joins[join_id] = join.model_copy(update={"trip_id": trip_id})
        return True

    async def fill_offer_id(self, join_id: int, offer_id: int) -> bool:
        join = self.store.joins.get(join_id)
        if join is None or join.offer_id is not None:
            return False
        self.store.joins[join_id] = join.model_copy(update={"offer_id": offer_id})
        return True


class FakeNotificationRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def create(self, user_id, message, join_id, trip_id, offer_id, conn=None) -> Notification:
        notification = Notification(
            id=self.store.new_id(), user_id=user_id, join_id=join_id,
            trip_id=trip_id, offer_id=offer_id, message=message,
        )
        self.store.notifications[notification.id] = notification
        return notification

    async def list_by_user(self, user_id: int) -> list[NotificationView]:
        views = []
        for n in sorted(self.store.notifications.values(), key=lambda n: n.id, reverse=True):
            if n.user_id != user_id:
                continue
            join = self.store.joins.get(n.join_id) if n.join_id is not None else None
            views.append(NotificationView(**n.model_dump(), join_status=join.status if join else None))
        return views

    async def mark_read(self, user_id: int, notification_id: int) -> bool:
        n = self.store.notifications.get(notification_id)
        if n is None or n.user_id != user_id:
            return False
        self.store.notifications[notification_id] = n.model_copy(update={"read": True})
        return True

    async def delete_for_joins(self, join_ids: list[int], conn) -> int:
        doomed = [nid for nid, n in self.store.notifications.items() if n.join_id in join_ids]
        for nid in doomed:
            del self.store.notifications[nid]
        return len(doomed)


@dataclass
class Engine:
    store: FakeStore
    db: FakeDatabase
    trips: FakeTripRepository
    offers: FakeOfferRepository
    joins: FakeJoinRepository
    notifications: NotificationService
    reconciler: LinkReconciler
    chat: ChatRoomResolver
    service: JoinService
    event_bus: AsyncMock

    def published(self) -> list[str]:
        return [call.args[0].event_type for call in self.event_bus.publish.await_args_list]


def build_engine(restore_seats_on_leave: bool = True) -> Engine:
    store = FakeStore()
    db = FakeDatabase(store)
    trips = FakeTripRepository(store)
    offers = FakeOfferRepository(store)
    joins = FakeJoinRepository(store)
    event_bus = AsyncMock()
    notifications = NotificationService(FakeNotificationRepository(store), event_bus=event_bus, language="en")
    reconciler = LinkReconciler(joins)
    service = JoinService(
        db, trips, offers, joins, notifications, reconciler,
        event_bus=event_bus,
        restore_seats_on_leave=restore_seats_on_leave,
    )
    return Engine(
        store=store,
        db=db,
        trips=trips,
        offers=offers,
        joins=joins,
        notifications=notifications,
        reconciler=reconciler,
        chat=ChatRoomResolver(trips, offers, joins),
        service=service,
        event_bus=event_bus,
    )


@pytest.fixture
def engine() -> Engine:
    return build_engine()


@pytest.fixture
def engine_factory():
    return build_engine
