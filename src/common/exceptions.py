# src/common/exceptions.py
"""
Доменные исключения.
HTTP-слой отображает их на коды ответа, воркеры логируют.
"""

from __future__ import annotations


class RidepoolError(Exception):
    """Базовое доменное исключение."""

    code: str = "error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(RidepoolError):
    """Поездка, предложение, заявка или уведомление не найдены."""

    code = "not_found"


class ForbiddenError(RidepoolError):
    """Действие не разрешено пользователю (не владелец, либо заявка на свою запись)."""

    code = "forbidden"


class CapacityExceededError(RidepoolError):
    """Недостаточно свободных мест в предложении."""

    code = "capacity_exceeded"

    def __init__(self, detail: str = "", *, required: int = 0, available: int = 0) -> None:
        super().__init__(detail)
        self.required = required
        self.available = available


class ConflictError(RidepoolError):
    """Недопустимый переход статуса или изменение заблокированной записи."""

    code = "conflict"


class UpstreamUnavailableError(RidepoolError):
    """Внешний сервис (геокодер) недоступен или вернул некорректный ответ."""

    code = "upstream_unavailable"
