# src/services/container.py
"""
Сборка зависимостей процесса.
HTTP-сервис и воркер используют один и тот же набор сервисов:
подключения открываются при старте и закрываются при остановке.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.common.constants import TypeMsg
from src.common.logger import log_info, log_warning
from src.config.loader import Settings
from src.core.geo import GeocoderAdapter
from src.core.joins import ChatRoomResolver, JoinRepository, JoinService, LinkReconciler
from src.core.matching import CandidateSearch
from src.core.notifications import NotificationRepository, NotificationService
from src.core.rides import OfferRepository, RideService, TripRepository
from src.infra.database import DatabaseManager, open_database
from src.infra.event_bus import EventBus
from src.infra.redis_client import RedisClient


@dataclass
class ServiceContainer:
    """Инфраструктура и доменные сервисы одного процесса."""

    db: DatabaseManager
    event_bus: EventBus
    redis: Optional[RedisClient]
    geocoder: GeocoderAdapter
    rides: RideService
    search: CandidateSearch
    joins: JoinService
    reconciler: LinkReconciler
    chat: ChatRoomResolver
    notifications: NotificationService

    @classmethod
    async def start(cls, config: Settings, apply_schema: bool = True) -> ServiceContainer:
        """
        Открывает подключения и собирает сервисы.

        PostgreSQL и RabbitMQ обязательны. Redis нужен только для кэша
        геокодирования: если он недоступен, сервис работает без кэша.
        """
        db = await open_database(config.database, apply_schema=apply_schema)

        event_bus = EventBus(config.rabbitmq)
        await event_bus.connect()

        redis_client = await _connect_cache(config) if config.redis.REDIS_ENABLED else None

        geocoder = GeocoderAdapter(
            api_url=config.geocoding.ORS_API_URL,
            api_key=config.geocoding.ORS_API_KEY,
            timeout=config.geocoding.GEOCODING_TIMEOUT,
            cache=redis_client,
            cache_ttl=config.geocoding.GEOCODE_CACHE_TTL,
        )

        trips = TripRepository(db)
        offers = OfferRepository(db)
        joins = JoinRepository(db)
        notifications = NotificationService(
            NotificationRepository(db),
            event_bus=event_bus,
            language=config.domain.DEFAULT_LANGUAGE,
        )
        reconciler = LinkReconciler(joins)

        await log_info("Сервисы инициализированы", type_msg=TypeMsg.INFO)

        return cls(
            db=db,
            event_bus=event_bus,
            redis=redis_client,
            geocoder=geocoder,
            rides=RideService(db, trips, offers),
            search=CandidateSearch(
                trips,
                offers,
                geocoder,
                max_alternatives=config.search.MAX_ALTERNATIVES,
                max_concurrent_geocodes=config.geocoding.MAX_CONCURRENT_GEOCODES,
            ),
            joins=JoinService(
                db,
                trips,
                offers,
                joins,
                notifications,
                reconciler,
                event_bus=event_bus,
                restore_seats_on_leave=config.joins.RESTORE_SEATS_ON_LEAVE,
            ),
            reconciler=reconciler,
            chat=ChatRoomResolver(trips, offers, joins),
            notifications=notifications,
        )

    async def close(self) -> None:
        """Закрывает подключения в обратном порядке."""
        await self.geocoder.close()
        if self.redis is not None:
            await self.redis.disconnect()
        await self.event_bus.disconnect()
        await self.db.disconnect()


async def _connect_cache(config: Settings) -> Optional[RedisClient]:
    client = RedisClient(config.redis)
    try:
        await client.connect()
    except Exception as e:
        await log_warning(f"Redis недоступен, геокодирование без кэша: {e}")
        await client.disconnect()
        return None
    return client
