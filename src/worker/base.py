# src/worker/base.py
"""
Базовый класс для воркеров.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List

from src.infra.event_bus import EventBus, DomainEvent
from src.common.logger import log_info, log_error
from src.common.constants import TypeMsg


class BaseWorker(ABC):
    """
    Базовый класс для всех воркеров.
    Подписывается на события и обрабатывает их; может запускать периодические задачи.
    """

    def __init__(self, event_bus: EventBus) -> None:
        """
        Инициализирует воркер.

        Args:
            event_bus: Шина событий
        """
        self.event_bus = event_bus
        self._running = False
        self._tasks: List[asyncio.Task] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя воркера."""
        pass

    @property
    @abstractmethod
    def subscriptions(self) -> List[str]:
        """Список типов событий для подписки."""
        pass

    @abstractmethod
    async def handle_event(self, event: DomainEvent) -> None:
        """
        Обрабатывает событие.

        Args:
            event: Доменное событие
        """
        pass

    @property
    def is_running(self) -> bool:
        return self._running

    async def on_start(self) -> None:
        """Хук, вызываемый после подписки на события."""

    async def start(self) -> None:
        """Запускает воркер."""
        if self._running:
            return

        self._running = True
        await log_info(f"Воркер {self.name} запускается...", type_msg=TypeMsg.INFO)

        for event_type in self.subscriptions:
            await self.event_bus.subscribe(event_type, self._on_event)
            await log_info(
                f"Воркер {self.name} подписан на {event_type}",
                type_msg=TypeMsg.DEBUG,
            )

        await self.on_start()
        await log_info(f"Воркер {self.name} запущен", type_msg=TypeMsg.INFO)

    async def stop(self) -> None:
        """Останавливает воркер."""
        if not self._running:
            return

        self._running = False

        # Отменяем все задачи
        for task in self._tasks:
            task.cancel()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        self._tasks.clear()
        await log_info(f"Воркер {self.name} остановлен", type_msg=TypeMsg.INFO)

    def schedule(self, name: str, interval: float, job: Callable[[], Awaitable[object]]) -> asyncio.Task:
        """
        Запускает job каждые interval секунд до остановки воркера.
        Первый запуск происходит через interval после старта.
        """
        task = asyncio.create_task(self._periodic(name, interval, job), name=f"{self.name}:{name}")
        self._tasks.append(task)
        return task

    async def _periodic(self, name: str, interval: float, job: Callable[[], Awaitable[object]]) -> None:
        while self._running:
            await asyncio.sleep(interval)
            if not self._running:
                break
            try:
                await job()
            except Exception as e:
                await log_error(f"Ошибка периодической задачи {name} в воркере {self.name}: {e}", exc_info=True)

    async def _on_event(self, event: DomainEvent) -> None:
        """
        Обработчик события.

        Args:
            event: Доменное событие
        """
        if not self._running:
            return

        try:
            await log_info(
                f"Воркер {self.name} получил событие {event.event_type}",
                type_msg=TypeMsg.DEBUG,
            )
            await self.handle_event(event)
        except Exception as e:
            await log_error(
                f"Ошибка в воркере {self.name}: {e}",
                extra={"event_type": event.event_type, "payload": event.payload},
            )
