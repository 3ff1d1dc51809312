# src/worker/maintenance.py
"""
Воркер обслуживания: сверка связей заявок и очистка устаревших записей.
"""

from __future__ import annotations

import datetime as dt
from typing import Callable, List, Optional

from src.worker.base import BaseWorker
from src.core.joins.reconciler import LinkReconciler
from src.core.rides.service import RideService
from src.infra.event_bus import DomainEvent, EventBus, EventTypes
from src.common.logger import log_info, log_warning
from src.common.constants import TypeMsg


class MaintenanceWorker(BaseWorker):
    """
    - при старте: полная сверка связей (если включена) и очистка устаревших записей
    - периодически: то же по интервалам из настроек
    - JOIN_CREATED: точечная сверка новой заявки (на случай, если
      вызов после создания не успел найти пару)
    """

    def __init__(
        self,
        event_bus: EventBus,
        reconciler: LinkReconciler,
        rides: RideService,
        reconcile_on_startup: bool = True,
        reconcile_interval: float = 3600,
        expiry_sweep_interval: float = 86400,
        today: Optional[Callable[[], dt.date]] = None,
    ) -> None:
        """
        Args:
            event_bus: Шина событий
            reconciler: Сверка связей заявок
            rides: Сервис поездок (очистка устаревших)
            reconcile_on_startup: Полная сверка при старте
            reconcile_interval: Интервал полной сверки, сек (0 отключает)
            expiry_sweep_interval: Интервал очистки, сек (0 отключает)
            today: Источник текущей даты
        """
        super().__init__(event_bus)
        self._reconciler = reconciler
        self._rides = rides
        self._reconcile_on_startup = reconcile_on_startup
        self._reconcile_interval = reconcile_interval
        self._expiry_sweep_interval = expiry_sweep_interval
        self._today = today or dt.date.today

    @property
    def name(self) -> str:
        return "MaintenanceWorker"

    @property
    def subscriptions(self) -> List[str]:
        return [EventTypes.JOIN_CREATED]

    async def on_start(self) -> None:
        if self._reconcile_on_startup:
            await self._reconciler.reconcile_all()
        await self.sweep_expired()

        if self._reconcile_interval > 0:
            self.schedule("reconcile", self._reconcile_interval, self._reconciler.reconcile_all)
        if self._expiry_sweep_interval > 0:
            self.schedule("expiry_sweep", self._expiry_sweep_interval, self.sweep_expired)

    async def sweep_expired(self) -> tuple[int, int]:
        return await self._rides.sweep_expired(self._today())

    async def handle_event(self, event: DomainEvent) -> None:
        """Обрабатывает событие."""
        if event.event_type == EventTypes.JOIN_CREATED:
            await self._handle_join_created(event)

    async def _handle_join_created(self, event: DomainEvent) -> None:
        join_id = event.payload.get("join_id")
        if join_id is None:
            await log_warning("Событие JOIN_CREATED без join_id", extra={"payload": event.payload})
            return

        report = await self._reconciler.reconcile_join(int(join_id))
        if report.linked:
            await log_info(f"Заявка {join_id} связана по событию", type_msg=TypeMsg.INFO)
