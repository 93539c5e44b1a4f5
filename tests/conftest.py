from __future__ import annotations

import os
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from redis import Redis
from redis.exceptions import RedisError

from leaderboard_api.config import Settings
from leaderboard_api.main import create_app
from leaderboard_api.models.records import HeroRecord, RunRecord
from leaderboard_api.services.leaderboard import LeaderboardService
from leaderboard_api.services.ranking import normalize_name, run_sort_key
from leaderboard_api.services.rate_limiter import FixedWindowRateLimiter
from leaderboard_api.storage.records import StorageUnavailableError


class InMemoryStore:
    """Stand-in for LeaderboardStore that keeps rows in dicts."""

    def __init__(self):
        self.runs: list[RunRecord] = []
        self.heroes: dict[str, HeroRecord] = {}
        self.best_run_reads: list[int] = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise StorageUnavailableError("store is down")

    async def insert_run(self, run):
        self._check()
        run_id = len(self.runs) + 1
        record = RunRecord(
            id=run_id,
            player_name=run.player_name,
            dungeon_tier=run.dungeon_tier,
            wave=run.wave,
            boss_hp_left=run.boss_hp_left,
            team_hero_ids=run.team_hero_ids,
            created_at=datetime.fromtimestamp(1_700_000_000 + run_id, tz=timezone.utc),
        )
        self.runs.append(record)
        return record.id

    async def fetch_best_runs(self, count):
        self._check()
        self.best_run_reads.append(count)
        best: dict[str, RunRecord] = {}
        for run in self.runs:
            key = normalize_name(run.player_name)
            if key not in best or run_sort_key(run) < run_sort_key(best[key]):
                best[key] = run
        return sorted(best.values(), key=run_sort_key)[:count]

    async def upsert_hero(self, hero, updated_at):
        self._check()
        key = normalize_name(hero.player_name)
        current = self.heroes.get(key)
        if current is not None and current.hero_level >= hero.hero_level:
            return False
        self.heroes[key] = HeroRecord(
            player_name=hero.player_name,
            hero_id=hero.hero_id,
            hero_level=hero.hero_level,
            rarest_artifact_def_id=hero.rarest_artifact_def_id,
            updated_at=datetime.fromtimestamp(updated_at, tz=timezone.utc),
        )
        return True

    async def fetch_heroes(self):
        self._check()
        return list(self.heroes.values())

    async def ping(self):
        self._check()
        return True


@pytest.fixture()
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def make_service(memory_store):
    def factory(max_submissions: int = 15, window_seconds: float = 60) -> LeaderboardService:
        limiter = FixedWindowRateLimiter(window_seconds=window_seconds, max_submissions=max_submissions)
        return LeaderboardService(memory_store, limiter, clock=lambda: 1_700_000_000.0)

    return factory


@pytest.fixture(scope="session")
def redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


@pytest.fixture(scope="session")
def redis_available(redis_url: str) -> bool:
    probe = Redis.from_url(redis_url, socket_connect_timeout=1)
    try:
        return bool(probe.ping())
    except RedisError:
        return False
    finally:
        probe.close()


def make_settings(redis_url: str, **overrides) -> Settings:
    values = {
        "redis_url": redis_url,
        "namespace": f"test_{uuid.uuid4().hex}",
        "rate_limit_max_submissions": 1000,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def offline_client(redis_url: str, make_service):
    """API client whose service is backed by the in-memory store."""
    app = create_app(make_settings(redis_url, rate_limit_max_submissions=3))
    with TestClient(app) as test_client:
        app.state.leaderboard_service = make_service(max_submissions=3)
        yield test_client


@pytest.fixture()
def client(redis_url: str, redis_available: bool):
    if not redis_available:
        pytest.skip(f"Redis is not reachable at {redis_url}")

    settings = make_settings(redis_url)
    app = create_app(settings)
    sync_redis = Redis.from_url(redis_url, decode_responses=True)

    with TestClient(app) as test_client:
        yield test_client, sync_redis, settings.namespace

    for key in sync_redis.scan_iter(match=f"{settings.namespace}:*"):
        sync_redis.delete(key)
    sync_redis.close()


@pytest.fixture()
def store_namespace(redis_url: str, redis_available: bool):
    if not redis_available:
        pytest.skip(f"Redis is not reachable at {redis_url}")

    namespace = f"test_{uuid.uuid4().hex}"
    sync_redis = Redis.from_url(redis_url, decode_responses=True)

    yield sync_redis, namespace

    for key in sync_redis.scan_iter(match=f"{namespace}:*"):
        sync_redis.delete(key)
    sync_redis.close()
