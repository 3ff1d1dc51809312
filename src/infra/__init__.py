# src/infra/__init__.py
"""
Инфраструктурный слой.
Работа с внешними сервисами: PostgreSQL, Redis, RabbitMQ.
"""

from src.infra.database import DatabaseManager, Executor, affected_rows, open_database
from src.infra.redis_client import RedisClient
from src.infra.event_bus import DomainEvent, EventBus, EventTypes

__all__ = [
    "DatabaseManager",
    "Executor",
    "affected_rows",
    "open_database",
    "RedisClient",
    "DomainEvent",
    "EventBus",
    "EventTypes",
]
