"""Redis client creation helpers used by application startup."""

from __future__ import annotations

import os

from redis.asyncio import Redis

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_SOCKET_TIMEOUT = 5.0


def get_redis_url() -> str:
    return os.getenv("REDIS_URL", DEFAULT_REDIS_URL)


def get_socket_timeout() -> float:
    return float(os.getenv("REDIS_SOCKET_TIMEOUT", DEFAULT_SOCKET_TIMEOUT))


def create_redis_client(redis_url: str | None = None, socket_timeout: float | None = None) -> Redis:
    # A stalled store surfaces as a RedisError instead of hanging the request.
    timeout = get_socket_timeout() if socket_timeout is None else socket_timeout
    return Redis.from_url(
        redis_url or get_redis_url(),
        decode_responses=True,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )
