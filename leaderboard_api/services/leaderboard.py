"""Submission and query orchestration for the run and hero leaderboards."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from leaderboard_api.models.records import HeroRecord, RunRecord
from leaderboard_api.services.rate_limiter import FixedWindowRateLimiter, RateLimitedError
from leaderboard_api.services.ranking import clamp_limit, top_heroes, top_runs
from leaderboard_api.services.validation import validate_hero, validate_run
from leaderboard_api.storage.records import LeaderboardStore

logger = logging.getLogger(__name__)


class LeaderboardService:
    """Runs and heroes share one rate limiter, so both count against the same per-client budget."""

    def __init__(
        self,
        store: LeaderboardStore,
        rate_limiter: FixedWindowRateLimiter,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.clock = clock

    async def _admit(self, client_id: str, now: float) -> None:
        if not await self.rate_limiter.admit(client_id, now):
            raise RateLimitedError(client_id)

    async def submit_run(self, client_id: str, payload: dict[str, Any], now: float | None = None) -> int:
        now = self.clock() if now is None else now
        await self._admit(client_id, now)

        run = validate_run(payload)
        run_id = await self.store.insert_run(run)
        logger.info(
            "Stored run %d for %r (tier=%d wave=%d boss_hp_left=%d)",
            run_id,
            run.player_name,
            run.dungeon_tier,
            run.wave,
            run.boss_hp_left,
        )
        return run_id

    async def query_runs(self, limit: Any = None) -> list[RunRecord]:
        # The reserved name holds at most one best-run slot, so one extra row covers it.
        best = await self.store.fetch_best_runs(clamp_limit(limit) + 1)
        return top_runs(best, limit)

    async def submit_hero(self, client_id: str, payload: dict[str, Any], now: float | None = None) -> bool:
        now = self.clock() if now is None else now
        await self._admit(client_id, now)

        hero = validate_hero(payload)
        applied = await self.store.upsert_hero(hero, updated_at=now)
        if applied:
            logger.info("Stored hero level %d for %r", hero.hero_level, hero.player_name)
        else:
            logger.debug("Kept existing hero for %r; level %d is not an improvement", hero.player_name, hero.hero_level)
        return applied

    async def query_heroes(self, limit: Any = None) -> list[HeroRecord]:
        return top_heroes(await self.store.fetch_heroes(), limit)

    async def ping(self) -> bool:
        return await self.store.ping()
