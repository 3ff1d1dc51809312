# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class JoinStatus(str, Enum):
    """Статусы заявки на присоединение."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ParentType(str, Enum):
    """Тип родительской записи заявки (поездка пассажира или предложение водителя)."""
    TRIP = "trip"
    OFFER = "offer"


class TripType(str, Enum):
    """Роль поездки. Сейчас поддерживается только запрос пассажира."""
    REQUEST = "request"


class SearchRole(str, Enum):
    """Что ищем: предложения водителей или поездки пассажиров."""
    OFFERS = "offers"
    TRIPS = "trips"
