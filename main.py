#!/usr/bin/env python3
# main.py
"""
Главная точка входа ridepool.
Запускает HTTP API (Join Service), воркер обслуживания или оба компонента.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg

VALID_MODES = ("api", "worker", "all")

# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Обработчик сигналов SIGINT и SIGTERM."""
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def run_api() -> None:
    """Запуск Join Service (FastAPI)."""
    import uvicorn

    await log_info(
        f"Запуск Join Service на {settings.deployment.JOIN_SERVICE_HOST}:{settings.deployment.JOIN_SERVICE_PORT}",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        "src.services.join_service.app:app",
        host=settings.deployment.JOIN_SERVICE_HOST,
        port=settings.deployment.JOIN_SERVICE_PORT,
        log_level="debug" if settings.system.DEBUG else "info",
    )
    server = uvicorn.Server(config)
    await server.serve()


async def run_worker() -> None:
    """Запуск воркера обслуживания."""
    from src.worker.runner import run_workers

    await run_workers()


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска (api, worker, all).
              Если None, берётся из COMPONENT_MODE.
    """
    setup_logging()
    setup_signal_handlers()

    if mode is None:
        mode = settings.system.COMPONENT_MODE if settings.system.COMPONENT_MODE in VALID_MODES else "all"

    await log_info(
        f"ridepool v{settings.system.VERSION}: запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    if mode == "api":
        _running_tasks.append(asyncio.create_task(run_api(), name="api"))
    elif mode == "worker":
        _running_tasks.append(asyncio.create_task(run_worker(), name="worker"))
    else:
        _running_tasks.append(asyncio.create_task(run_api(), name="api"))
        _running_tasks.append(asyncio.create_task(run_worker(), name="worker"))

    try:
        results = await asyncio.gather(*_running_tasks, return_exceptions=True)
        for task, result in zip(_running_tasks, results):
            if isinstance(result, Exception):
                await log_error(f"Компонент {task.get_name()} завершился с ошибкой: {result}")
    finally:
        await log_info("ridepool остановлен", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    print("""
ridepool: поиск попутчиков, заявки и учёт мест

Использование:
    python main.py [mode]

Режимы:
    api       Join Service (HTTP API, порт из JOIN_SERVICE_PORT)
    worker    MaintenanceWorker (сверка связей, очистка устаревших записей)
    all       оба компонента в одном процессе (по умолчанию)

Без аргумента режим берётся из COMPONENT_MODE.
    """)


if __name__ == "__main__":
    mode = None

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in VALID_MODES:
            mode = arg
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
