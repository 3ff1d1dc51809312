# src/services/__init__.py
"""
Сервисы приложения.

- join_service: HTTP API поиска, заявок, чатов и уведомлений (FastAPI)
- container: сборка зависимостей, общая для HTTP-сервиса и воркера

Коммуникация: PostgreSQL (источник истины), RabbitMQ (события),
Redis (кэш геокодирования).
"""

__all__: list[str] = []
