# src/core/__init__.py
"""
Доменный слой (Core Domain).
Поездки и предложения, поиск попутчиков, заявки на присоединение,
уведомления. Инфраструктура передаётся в сервисы явно.
"""

from src.core.rides import RideService
from src.core.matching import CandidateSearch
from src.core.joins import ChatRoomResolver, JoinService, LinkReconciler
from src.core.notifications import NotificationService

__all__ = [
    "RideService",
    "CandidateSearch",
    "ChatRoomResolver",
    "JoinService",
    "LinkReconciler",
    "NotificationService",
]
