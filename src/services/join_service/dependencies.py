from fastapi import Header, HTTPException, Request, status

from src.core.joins import ChatRoomResolver, JoinService, LinkReconciler
from src.core.matching import CandidateSearch
from src.core.notifications import NotificationService
from src.core.rides import RideService
from src.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_current_user_id(x_user_id: int | None = Header(default=None)) -> int:
    # Аутентификация выполняется на шлюзе, сюда приходит только ID пользователя
    if x_user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-User-Id header is required")
    return x_user_id


def get_ride_service(request: Request) -> RideService:
    return get_container(request).rides


def get_candidate_search(request: Request) -> CandidateSearch:
    return get_container(request).search


def get_join_service(request: Request) -> JoinService:
    return get_container(request).joins


def get_chat_resolver(request: Request) -> ChatRoomResolver:
    return get_container(request).chat


def get_notification_service(request: Request) -> NotificationService:
    return get_container(request).notifications


def get_reconciler(request: Request) -> LinkReconciler:
    return get_container(request).reconciler
