from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from src.common.constants import ParentType
from src.core.joins import ChatRoomResolver, JoinedRide, JoinRequest, JoinService, LinkReconciler, ReconcileReport
from src.core.matching import CandidateSearch, OfferSearchQuery, SearchResult, TripSearchQuery
from src.core.notifications import NotificationService, NotificationView
from src.core.rides import Offer, OfferCreateDTO, OfferOverview, RideService, Trip, TripCreateDTO
from src.services.join_service.dependencies import (
    get_candidate_search,
    get_chat_resolver,
    get_current_user_id,
    get_join_service,
    get_notification_service,
    get_reconciler,
    get_ride_service,
)


class OfferJoinRequest(BaseModel):
    trip_id: Optional[int] = None


class JoinCreatedResponse(BaseModel):
    join_id: int


class LeaveResponse(BaseModel):
    removed: int


class ChatRoomResponse(BaseModel):
    room: str


# ===== Поиск =====

search_router = APIRouter(prefix="/search", tags=["Search"])


@search_router.post("/offers", response_model=SearchResult[Offer])
async def search_offers(
    query: OfferSearchQuery,
    user_id: int = Depends(get_current_user_id),
    search: CandidateSearch = Depends(get_candidate_search),
):
    return await search.search_offers(query)


@search_router.post("/trips", response_model=SearchResult[Trip])
async def search_trips(
    query: TripSearchQuery,
    user_id: int = Depends(get_current_user_id),
    search: CandidateSearch = Depends(get_candidate_search),
):
    # Водитель никогда не видит собственные поездки
    return await search.search_trips(query.model_copy(update={"excluding_user_id": user_id}))


# ===== Поездки и предложения =====

trips_router = APIRouter(prefix="/trips", tags=["Trips"])


@trips_router.post("", response_model=Trip, status_code=status.HTTP_201_CREATED)
async def create_trip(
    request: TripCreateDTO,
    user_id: int = Depends(get_current_user_id),
    service: RideService = Depends(get_ride_service),
):
    return await service.create_trip(user_id, request)


@trips_router.get("", response_model=list[Trip])
async def list_trips(
    user_id: int = Depends(get_current_user_id),
    service: RideService = Depends(get_ride_service),
):
    return await service.list_trips(user_id)


@trips_router.put("/{trip_id}", response_model=Trip)
async def update_trip(
    trip_id: int,
    request: TripCreateDTO,
    user_id: int = Depends(get_current_user_id),
    service: RideService = Depends(get_ride_service),
):
    return await service.update_trip(user_id, trip_id, request)


@trips_router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: int,
    user_id: int = Depends(get_current_user_id),
    service: RideService = Depends(get_ride_service),
):
    await service.delete_trip(user_id, trip_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@trips_router.post("/{trip_id}/joins", response_model=JoinCreatedResponse)
async def join_trip(
    trip_id: int,
    user_id: int = Depends(get_current_user_id),
    service: JoinService = Depends(get_join_service),
):
    return JoinCreatedResponse(join_id=await service.create_join_on_trip(user_id, trip_id))


offers_router = APIRouter(prefix="/offers", tags=["Offers"])


@offers_router.post("", response_model=Offer, status_code=status.HTTP_201_CREATED)
async def create_offer(
    request: OfferCreateDTO,
    user_id: int = Depends(get_current_user_id),
    service: RideService = Depends(get_ride_service),
):
    return await service.create_offer(user_id, request)


@offers_router.get("", response_model=list[OfferOverview])
async def list_offers(
    user_id: int = Depends(get_current_user_id),
    service: RideService = Depends(get_ride_service),
):
    return await service.list_offers(user_id)


@offers_router.put("/{offer_id}", response_model=Offer)
async def update_offer(
    offer_id: int,
    request: OfferCreateDTO,
    user_id: int = Depends(get_current_user_id),
    service: RideService = Depends(get_ride_service),
):
    return await service.update_offer(user_id, offer_id, request)


@offers_router.delete("/{offer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_offer(
    offer_id: int,
    user_id: int = Depends(get_current_user_id),
    service: RideService = Depends(get_ride_service),
):
    await service.delete_offer(user_id, offer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@offers_router.post("/{offer_id}/joins", response_model=JoinCreatedResponse)
async def join_offer(
    offer_id: int,
    request: Optional[OfferJoinRequest] = None,
    user_id: int = Depends(get_current_user_id),
    service: JoinService = Depends(get_join_service),
):
    trip_id = request.trip_id if request is not None else None
    return JoinCreatedResponse(join_id=await service.create_join_on_offer(user_id, offer_id, trip_id))


# ===== Заявки =====

joins_router = APIRouter(prefix="/joins", tags=["Joins"])


@joins_router.get("", response_model=list[JoinedRide])
async def list_joins(
    user_id: int = Depends(get_current_user_id),
    service: JoinService = Depends(get_join_service),
):
    return await service.list_joined(user_id)


@joins_router.post("/{join_id}/accept", response_model=JoinRequest)
async def accept_join(
    join_id: int,
    user_id: int = Depends(get_current_user_id),
    service: JoinService = Depends(get_join_service),
):
    return await service.accept_join(user_id, join_id)


@joins_router.post("/{join_id}/reject", response_model=JoinRequest)
async def reject_join(
    join_id: int,
    user_id: int = Depends(get_current_user_id),
    service: JoinService = Depends(get_join_service),
):
    return await service.reject_join(user_id, join_id)


@joins_router.delete("/{parent_type}/{parent_id}", response_model=LeaveResponse)
async def leave_join(
    parent_type: ParentType,
    parent_id: int,
    user_id: int = Depends(get_current_user_id),
    service: JoinService = Depends(get_join_service),
):
    return LeaveResponse(removed=await service.leave_join(user_id, parent_type, parent_id))


# ===== Чат и уведомления =====

chat_router = APIRouter(prefix="/chat", tags=["Chat"])


@chat_router.get("/{parent_type}/{parent_id}/room", response_model=ChatRoomResponse)
async def chat_room(
    parent_type: ParentType,
    parent_id: int,
    user_id: int = Depends(get_current_user_id),
    resolver: ChatRoomResolver = Depends(get_chat_resolver),
):
    return ChatRoomResponse(room=await resolver.resolve(parent_type, parent_id))


notifications_router = APIRouter(prefix="/notifications", tags=["Notifications"])


@notifications_router.get("", response_model=list[NotificationView])
async def list_notifications(
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.list_for_user(user_id)


@notifications_router.put("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_notification_read(
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    await service.mark_read(user_id, notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===== Обслуживание =====

maintenance_router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


@maintenance_router.post("/reconcile", response_model=ReconcileReport)
async def reconcile_links(reconciler: LinkReconciler = Depends(get_reconciler)):
    return await reconciler.reconcile_all()


routers = [
    search_router,
    trips_router,
    offers_router,
    joins_router,
    chat_router,
    notifications_router,
    maintenance_router,
]
