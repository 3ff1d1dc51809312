# src/core/notifications/__init__.py
"""
Уведомления о событиях заявок.
"""

from src.core.notifications.models import Notification, NotificationDraft, NotificationView
from src.core.notifications.repository import NotificationRepository
from src.core.notifications.service import NotificationService

__all__ = [
    "Notification",
    "NotificationDraft",
    "NotificationView",
    "NotificationRepository",
    "NotificationService",
]
