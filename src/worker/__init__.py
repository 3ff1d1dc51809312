# src/worker/__init__.py
"""
Фоновые воркеры: обработка событий из RabbitMQ и периодическое обслуживание.
"""

from src.worker.base import BaseWorker
from src.worker.maintenance import MaintenanceWorker

__all__ = ["BaseWorker", "MaintenanceWorker"]
