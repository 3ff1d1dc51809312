# tests/services/test_join_service_api.py
"""
Тесты HTTP API сервиса заявок.
"""

from __future__ import annotations

import math
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.common.constants import JoinStatus, ParentType
from src.common.exceptions import (
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from src.core.joins import JoinRequest, ReconcileReport
from src.core.matching import RankedCandidate, SearchResult, TripSearchQuery
from src.core.rides import Offer, Trip
from src.services.join_service.app import create_app

USER = {"X-User-Id": "111"}


@pytest.fixture
def container() -> MagicMock:
    container = MagicMock()
    container.rides = AsyncMock()
    container.search = AsyncMock()
    container.joins = AsyncMock()
    container.chat = AsyncMock()
    container.notifications = AsyncMock()
    container.reconciler = AsyncMock()
    container.db.health_check = AsyncMock(return_value=True)
    container.event_bus.health_check = AsyncMock(return_value=True)
    container.redis = None
    return container


@pytest.fixture
def client(container: MagicMock) -> TestClient:
    app = create_app(use_lifespan=False)
    app.state.container = container
    return TestClient(app)


class TestAuth:

    def test_missing_user_header(self, client: TestClient) -> None:
        response = client.get("/api/v1/trips")
        assert response.status_code == 401

    def test_user_header_passed_to_service(self, client: TestClient, container: MagicMock) -> None:
        container.rides.list_trips.return_value = []

        response = client.get("/api/v1/trips", headers=USER)

        assert response.status_code == 200
        container.rides.list_trips.assert_awaited_once_with(111)


class TestErrorMapping:
    """Доменные исключения отображаются на коды ответа."""

    @pytest.mark.parametrize(
        "error, status_code, code",
        [
            (NotFoundError("нет"), 404, "not_found"),
            (ForbiddenError("нельзя"), 403, "forbidden"),
            (ConflictError("уже"), 409, "conflict"),
        ],
    )
    def test_accept_errors(self, client, container, error, status_code, code) -> None:
        container.joins.accept_join.side_effect = error

        response = client.post("/api/v1/joins/5/accept", headers=USER)

        assert response.status_code == status_code
        assert response.json()["error"] == code

    def test_capacity_body(self, client, container) -> None:
        container.joins.accept_join.side_effect = CapacityExceededError("мало мест", required=3, available=1)

        response = client.post("/api/v1/joins/5/accept", headers=USER)

        assert response.status_code == 409
        assert response.json() == {
            "error": "capacity_exceeded",
            "detail": "мало мест",
            "required": 3,
            "available": 1,
        }


class TestJoins:

    def test_join_trip(self, client, container) -> None:
        container.joins.create_join_on_trip.return_value = 7

        response = client.post("/api/v1/trips/10/joins", headers=USER)

        assert response.json() == {"join_id": 7}
        container.joins.create_join_on_trip.assert_awaited_once_with(111, 10)

    def test_join_offer_without_body(self, client, container) -> None:
        container.joins.create_join_on_offer.return_value = 8

        response = client.post("/api/v1/offers/20/joins", headers=USER)

        assert response.json() == {"join_id": 8}
        container.joins.create_join_on_offer.assert_awaited_once_with(111, 20, None)

    def test_join_offer_with_trip(self, client, container) -> None:
        container.joins.create_join_on_offer.return_value = 8

        client.post("/api/v1/offers/20/joins", headers=USER, json={"trip_id": 10})

        container.joins.create_join_on_offer.assert_awaited_once_with(111, 20, 10)

    def test_accept_returns_join(self, client, container) -> None:
        container.joins.accept_join.return_value = JoinRequest(
            id=5, user_id=333, trip_id=10, offer_id=20, status=JoinStatus.ACCEPTED,
            target=ParentType.OFFER, seats_taken=2,
        )

        response = client.post("/api/v1/joins/5/accept", headers=USER)

        assert response.status_code == 200
        assert response.json()["status"] == "accepted"
        assert response.json()["seats_taken"] == 2
        container.joins.accept_join.assert_awaited_once_with(111, 5)

    def test_leave(self, client, container) -> None:
        container.joins.leave_join.return_value = 2

        response = client.delete("/api/v1/joins/offer/20", headers=USER)

        assert response.json() == {"removed": 2}
        container.joins.leave_join.assert_awaited_once_with(111, ParentType.OFFER, 20)

    def test_leave_unknown_parent_type(self, client) -> None:
        response = client.delete("/api/v1/joins/bus/20", headers=USER)
        assert response.status_code == 422


class TestSearch:

    def test_trip_search_excludes_caller(self, client, container) -> None:
        container.search.search_trips.return_value = SearchResult[Trip]()

        response = client.post(
            "/api/v1/search/trips",
            headers=USER,
            json={"origin": "Warsaw", "destination": "Krakow", "date": "2024-06-01", "excluding_user_id": 999},
        )

        assert response.status_code == 200
        query = container.search.search_trips.await_args.args[0]
        assert isinstance(query, TripSearchQuery)
        assert query.excluding_user_id == 111

    def test_unknown_distance_serialized_as_null(self, client, container, sample_offer: Offer) -> None:
        container.search.search_offers.return_value = SearchResult[Offer](
            alternatives=[
                RankedCandidate[Offer](
                    candidate=sample_offer,
                    distance_to_origin=math.inf,
                    distance_to_destination=12.5,
                )
            ]
        )

        response = client.post(
            "/api/v1/search/offers",
            headers=USER,
            json={"origin": "Warsaw", "destination": "Krakow", "date": "2024-06-01"},
        )

        alternative = response.json()["alternatives"][0]
        assert alternative["distance_to_origin"] is None
        assert alternative["distance_to_destination"] == 12.5

    def test_invalid_party_size(self, client) -> None:
        response = client.post(
            "/api/v1/search/offers",
            headers=USER,
            json={"origin": "Warsaw", "destination": "Krakow", "date": "2024-06-01", "party_size": 0},
        )
        assert response.status_code == 422


class TestRides:

    def test_create_trip(self, client, container, sample_trip: Trip) -> None:
        container.rides.create_trip.return_value = sample_trip

        response = client.post(
            "/api/v1/trips",
            headers=USER,
            json={"origin": " Warsaw ", "destination": "Krakow", "date": "2024-06-01", "people": 2},
        )

        assert response.status_code == 201
        dto = container.rides.create_trip.await_args.args[1]
        assert dto.origin == "Warsaw"

    def test_delete_offer(self, client, container) -> None:
        response = client.delete("/api/v1/offers/20", headers=USER)

        assert response.status_code == 204
        container.rides.delete_offer.assert_awaited_once_with(111, 20)


class TestChatAndNotifications:

    def test_chat_room(self, client, container) -> None:
        container.chat.resolve.return_value = "offer:20"

        response = client.get("/api/v1/chat/trip/10/room", headers=USER)

        assert response.json() == {"room": "offer:20"}
        container.chat.resolve.assert_awaited_once_with(ParentType.TRIP, 10)

    def test_mark_read_missing(self, client, container) -> None:
        container.notifications.mark_read.side_effect = NotFoundError("нет")

        response = client.put("/api/v1/notifications/3/read", headers=USER)

        assert response.status_code == 404

    def test_reconcile(self, client, container) -> None:
        container.reconciler.reconcile_all.return_value = ReconcileReport(scanned=3, trip_links=1)

        response = client.post("/api/v1/maintenance/reconcile")

        assert response.json() == {"scanned": 3, "trip_links": 1, "offer_links": 0, "failed": 0}


class TestHealth:

    def test_healthy(self, client) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"] == {"database": True, "rabbitmq": True, "redis": None}

    def test_degraded(self, client, container) -> None:
        container.db.health_check.return_value = False

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
