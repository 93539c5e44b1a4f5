"""Environment-driven settings shared by application startup and the runner."""

from __future__ import annotations

import os
from dataclasses import dataclass

from leaderboard_api.storage.redis import get_redis_url


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class Settings:
    redis_url: str
    namespace: str = "lb"
    rate_limit_window_seconds: float = 60
    rate_limit_max_submissions: int = 15
    trust_forwarded_for: bool = False
    log_level: str = "INFO"
    port: int = 3000

    @classmethod
    def from_env(cls) -> Settings:
        settings = cls(
            redis_url=get_redis_url(),
            namespace=os.getenv("LEADERBOARD_NAMESPACE", "lb"),
            rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", 60),
            rate_limit_max_submissions=_env_int("RATE_LIMIT_MAX_SUBMISSIONS", 15),
            trust_forwarded_for=_env_bool("TRUST_FORWARDED_FOR", False),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=_env_int("PORT", 3000),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.rate_limit_window_seconds <= 0:
            raise ValueError("RATE_LIMIT_WINDOW_SECONDS must be positive")
        if self.rate_limit_max_submissions <= 0:
            raise ValueError("RATE_LIMIT_MAX_SUBMISSIONS must be positive")
        if not self.namespace:
            raise ValueError("LEADERBOARD_NAMESPACE must not be empty")
