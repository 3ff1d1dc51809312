# src/core/geo/service.py
"""
Геокодер на базе OpenRouteService.
Название места -> координаты; любые сбои провайдера превращаются в None.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from src.common.constants import TypeMsg
from src.common.exceptions import UpstreamUnavailableError
from src.common.logger import log_info, log_warning
from src.core.geo.distance import Coordinates
from src.infra.redis_client import RedisClient


def canonical_place(name: str) -> str:
    """Каноническое имя места: обрезка, схлопывание пробелов, нижний регистр."""
    return " ".join(name.split()).lower()


class GeocoderAdapter:
    """
    Адаптер геокодирования.

    - GET {api_url}/geocode/search?api_key=...&text=...
    - координаты берутся из первого feature: [lon, lat]
    - удачные ответы кэшируются в Redis (если клиент передан)
    """

    SEARCH_PATH = "/geocode/search"

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 5.0,
        cache: RedisClient | None = None,
        cache_ttl: int = 86400,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Закрывает HTTP клиент."""
        await self._client.aclose()

    async def geocode(self, place: str) -> Optional[Coordinates]:
        """
        Прямое геокодирование.

        Args:
            place: Название места в свободной форме

        Returns:
            Координаты или None, если место не найдено или провайдер недоступен
        """
        key = canonical_place(place)
        if not key:
            return None

        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        try:
            coordinates = await self._request(place)
        except UpstreamUnavailableError as e:
            await log_warning(f"Геокодер недоступен для '{place}': {e.detail}")
            return None

        if coordinates is None:
            await log_info(f"Геокодирование не дало результатов для: {place}", type_msg=TypeMsg.DEBUG)
            return None

        await self._cache_set(key, coordinates)
        return coordinates

    async def _request(self, place: str) -> Optional[Coordinates]:
        """Запрос к провайдеру. Сетевые ошибки и битые ответы -> UpstreamUnavailableError."""
        if not self._api_key:
            raise UpstreamUnavailableError("ORS API key не настроен")

        try:
            response = await self._client.get(
                f"{self._api_url}{self.SEARCH_PATH}",
                params={"api_key": self._api_key, "text": place, "size": 1},
            )
            response.raise_for_status()
            data: dict[str, Any] = response.json()
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(str(e)) from e
        except ValueError as e:
            raise UpstreamUnavailableError(f"некорректный JSON: {e}") from e

        if not isinstance(data, dict):
            raise UpstreamUnavailableError("ответ геокодера не является объектом")

        features = data.get("features") or []
        if not features:
            return None

        try:
            lon, lat = features[0]["geometry"]["coordinates"][:2]
            return Coordinates(lon=float(lon), lat=float(lat))
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailableError(f"неожиданный формат ответа: {e}") from e

    async def _cache_get(self, key: str) -> Optional[Coordinates]:
        if self._cache is None:
            return None
        try:
            return await self._cache.get_model(f"geocode:{key}", Coordinates)
        except Exception as e:
            await log_warning(f"Кэш геокодера недоступен: {e}")
            return None

    async def _cache_set(self, key: str, coordinates: Coordinates) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set_model(f"geocode:{key}", coordinates, ttl=self._cache_ttl)
        except Exception as e:
            await log_warning(f"Не удалось записать в кэш геокодера: {e}")
