# src/worker/runner.py
"""
Запускалка воркеров.
"""

from __future__ import annotations

import asyncio
from typing import List

from src.worker.base import BaseWorker
from src.worker.maintenance import MaintenanceWorker
from src.services.container import ServiceContainer
from src.common.logger import log_info, log_error
from src.common.constants import TypeMsg
from src.config import settings


def build_workers(container: ServiceContainer) -> List[BaseWorker]:
    """Создаёт воркеры поверх уже собранных сервисов."""
    maintenance = settings.maintenance
    return [
        MaintenanceWorker(
            event_bus=container.event_bus,
            reconciler=container.reconciler,
            rides=container.rides,
            reconcile_on_startup=maintenance.RECONCILE_ON_STARTUP,
            reconcile_interval=maintenance.RECONCILE_INTERVAL,
            expiry_sweep_interval=maintenance.EXPIRY_SWEEP_INTERVAL,
        ),
    ]


async def run_workers(container: ServiceContainer | None = None) -> None:
    """
    Запускает воркеры и ждёт отмены.

    Args:
        container: Готовые сервисы. Если None, инфраструктура
                   поднимается и закрывается здесь же.
    """
    await log_info("Запуск воркеров...", type_msg=TypeMsg.INFO)

    own_container = container is None
    if own_container:
        await log_info("Инициализация инфраструктуры для воркеров...", type_msg=TypeMsg.DEBUG)
        container = await ServiceContainer.start(settings)

    workers = build_workers(container)

    try:
        for worker in workers:
            await worker.start()

        await log_info(
            f"Запущено {len(workers)} воркеров",
            type_msg=TypeMsg.INFO,
        )

        # Ждём завершения (Ctrl+C)
        while True:
            await asyncio.sleep(1)

    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise
    finally:
        for worker in workers:
            await worker.stop()

        if own_container:
            await container.close()

        await log_info("Воркеры остановлены", type_msg=TypeMsg.INFO)


def main() -> None:
    """Точка входа."""
    try:
        asyncio.run(run_workers())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
