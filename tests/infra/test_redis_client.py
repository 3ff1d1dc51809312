# tests/infra/test_redis_client.py
"""
Тесты для клиента Redis.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from pydantic import BaseModel

from src.config.loader import RedisSettings
from src.infra.redis_client import RedisClient


class Point(BaseModel):
    lat: float
    lon: float


@pytest.fixture
def backend() -> AsyncMock:
    backend = AsyncMock()
    backend.get.return_value = None
    backend.set.return_value = True
    backend.ping.return_value = True
    return backend


@pytest.fixture
def client(backend: AsyncMock) -> RedisClient:
    client = RedisClient(RedisSettings(REDIS_NAMESPACE="test"))
    client._client = backend
    return client


class TestConnection:

    def test_client_before_connect(self) -> None:
        with pytest.raises(RuntimeError):
            RedisClient(RedisSettings()).client

    @pytest.mark.asyncio
    async def test_connect_pings(self, backend: AsyncMock) -> None:
        client = RedisClient(RedisSettings(REDIS_MAX_CONNECTIONS=7))

        with patch("src.infra.redis_client.redis.from_url", return_value=backend) as mock_from_url:
            await client.connect()

        mock_from_url.assert_called_once_with("redis://localhost:6379/0", max_connections=7, decode_responses=True)
        backend.ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure_propagates(self, backend: AsyncMock) -> None:
        backend.ping.side_effect = ConnectionError("refused")

        with patch("src.infra.redis_client.redis.from_url", return_value=backend):
            with pytest.raises(ConnectionError):
                await RedisClient(RedisSettings()).connect()

    @pytest.mark.asyncio
    async def test_disconnect(self, client: RedisClient, backend: AsyncMock) -> None:
        await client.disconnect()

        backend.aclose.assert_awaited_once()
        with pytest.raises(RuntimeError):
            client.client


class TestOperations:

    @pytest.mark.asyncio
    async def test_keys_are_namespaced(self, client: RedisClient, backend: AsyncMock) -> None:
        await client.set("geocode:warsaw", "x", ttl=60)
        await client.get("geocode:warsaw")
        await client.delete("geocode:warsaw")

        backend.set.assert_awaited_once_with("test:geocode:warsaw", "x", ex=60)
        backend.get.assert_awaited_once_with("test:geocode:warsaw")
        backend.delete.assert_awaited_once_with("test:geocode:warsaw")

    @pytest.mark.asyncio
    async def test_model_roundtrip(self, client: RedisClient, backend: AsyncMock) -> None:
        await client.set_model("p", Point(lat=52.2, lon=21.0))
        backend.get.return_value = backend.set.await_args.args[1]

        assert await client.get_model("p", Point) == Point(lat=52.2, lon=21.0)

    @pytest.mark.asyncio
    async def test_corrupt_model_is_miss(self, client: RedisClient, backend: AsyncMock) -> None:
        backend.get.return_value = '{"lat": "north"}'

        with patch("src.infra.redis_client.log_error", new_callable=AsyncMock) as mock_log_error:
            assert await client.get_model("p", Point) is None

        mock_log_error.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health_check_failure(self, client: RedisClient, backend: AsyncMock) -> None:
        backend.ping.side_effect = ConnectionError("down")

        with patch("src.infra.redis_client.log_error", new_callable=AsyncMock):
            assert await client.health_check() is False
