# src/core/joins/__init__.py
"""
Заявки на присоединение: машина состояний, сверка связей, чат-комнаты.
"""

from src.core.joins.chat import ChatRoomResolver, room_key
from src.core.joins.models import JoinedRide, JoinRequest, ReconcileReport
from src.core.joins.reconciler import LinkReconciler
from src.core.joins.repository import JoinRepository
from src.core.joins.service import JoinService
from src.core.joins.state_machine import JoinStateMachine

__all__ = [
    "ChatRoomResolver",
    "room_key",
    "JoinedRide",
    "JoinRequest",
    "ReconcileReport",
    "LinkReconciler",
    "JoinRepository",
    "JoinService",
    "JoinStateMachine",
]
