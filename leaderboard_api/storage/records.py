"""Redis persistence for run and hero records.

Layout under a namespace prefix ``{ns}``:

- ``{ns}:runs:next_id``         counter allocating run ids
- ``{ns}:runs:last_created_at`` latest run timestamp handed out
- ``{ns}:run:{id}``             hash holding one run row
- ``{ns}:runs``                 sorted set of every run id in leaderboard order
- ``{ns}:runs:best``            sorted set of each player's best run id in leaderboard order
- ``{ns}:runs:best_by_player``  hash mapping normalized player name to its best run id
- ``{ns}:hero:{name}``          hash holding one hero row, keyed by normalized name
- ``{ns}:heroes``               sorted set of normalized hero names by level
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from redis.asyncio import Redis
from redis.exceptions import RedisError

from leaderboard_api.models.records import (
    HeroRecord,
    HeroSubmission,
    RunRecord,
    RunSubmission,
    TeamHeroIds,
)
from leaderboard_api.services.ranking import normalize_name

# Must match the %012d member format in RUN_INSERT_SCRIPT.
RUN_ID_WIDTH = 12

# Allocate the id and the server timestamp in one step so id order and
# created_at order always agree, then move the player's best-run pointer if
# the new run scores strictly better. The row key is built from the allocated
# id, so this script targets a single Redis node.
RUN_INSERT_SCRIPT = """
redis.replicate_commands()
local id = redis.call('INCR', KEYS[1])
local clock = redis.call('TIME')
local now = tonumber(clock[1]) + tonumber(clock[2]) / 1000000
local last = tonumber(redis.call('GET', KEYS[2]) or '0')
if now < last then
  now = last
end
local created_at = string.format('%.6f', now)
redis.call('SET', KEYS[2], created_at)

local member = string.format('%012d', id)
local score = tonumber(ARGV[3])
redis.call('HSET', ARGV[1] .. member,
  'id', tostring(id),
  'player_name', ARGV[4],
  'dungeon_tier', ARGV[5],
  'wave', ARGV[6],
  'boss_hp_left', ARGV[7],
  'team_hero_ids', ARGV[8],
  'created_at', created_at)
redis.call('ZADD', KEYS[3], score, member)

local best = redis.call('HGET', KEYS[4], ARGV[2])
if best then
  local best_score = tonumber(redis.call('ZSCORE', KEYS[5], best))
  if best_score and best_score <= score then
    return id
  end
  redis.call('ZREM', KEYS[5], best)
end
redis.call('HSET', KEYS[4], ARGV[2], member)
redis.call('ZADD', KEYS[5], score, member)
return id
"""

# Replace the hero row only when the submitted level is strictly higher.
HERO_UPSERT_SCRIPT = """
local current = redis.call('HGET', KEYS[1], 'hero_level')
if current and tonumber(current) >= tonumber(ARGV[3]) then
  return 0
end
redis.call('HSET', KEYS[1],
  'player_name', ARGV[1],
  'hero_id', ARGV[2],
  'hero_level', ARGV[3],
  'rarest_artifact_def_id', ARGV[4],
  'updated_at', ARGV[5])
redis.call('ZADD', KEYS[2], -tonumber(ARGV[3]), ARGV[6])
return 1
"""


class StorageUnavailableError(Exception):
    """Raised when the backing store cannot complete an operation."""


def run_index_score(run: RunSubmission) -> float:
    # Lower score ranks first: higher tier, then higher wave, then less boss hp.
    # Equal scores fall back to member order, which is the zero-padded id.
    composite = run.dungeon_tier * 10**10 + run.wave * 10**6 + (999_999 - run.boss_hp_left)
    return -float(composite)


def _timestamp(value: str) -> datetime:
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def _decode_team(value: str | None) -> TeamHeroIds:
    if not value:
        return None
    return json.loads(value)


def _run_from_row(row: dict[str, str]) -> RunRecord:
    return RunRecord(
        id=int(row["id"]),
        player_name=row["player_name"],
        dungeon_tier=int(row["dungeon_tier"]),
        wave=int(row["wave"]),
        boss_hp_left=int(row["boss_hp_left"]),
        team_hero_ids=_decode_team(row.get("team_hero_ids")),
        created_at=_timestamp(row["created_at"]),
    )


class LeaderboardStore:
    def __init__(self, redis_client: Redis, namespace: str = "lb"):
        self.redis = redis_client
        self.namespace = namespace
        self._run_insert = redis_client.register_script(RUN_INSERT_SCRIPT)
        self._hero_upsert = redis_client.register_script(HERO_UPSERT_SCRIPT)

    def key(self, *parts: str) -> str:
        return ":".join((self.namespace, *parts))

    def run_key(self, run_id: int) -> str:
        return self.key("run", str(run_id).zfill(RUN_ID_WIDTH))

    def hero_key(self, name: str) -> str:
        return self.key("hero", normalize_name(name))

    async def insert_run(self, run: RunSubmission) -> int:
        """Append ``run``; the store assigns its id and ``created_at``."""
        try:
            run_id = await self._run_insert(
                keys=[
                    self.key("runs", "next_id"),
                    self.key("runs", "last_created_at"),
                    self.key("runs"),
                    self.key("runs", "best_by_player"),
                    self.key("runs", "best"),
                ],
                args=[
                    self.key("run", ""),
                    normalize_name(run.player_name),
                    repr(run_index_score(run)),
                    run.player_name,
                    run.dungeon_tier,
                    run.wave,
                    run.boss_hp_left,
                    "" if run.team_hero_ids is None else json.dumps(run.team_hero_ids),
                ],
            )
        except RedisError as exc:
            raise StorageUnavailableError("Failed to save run") from exc
        return int(run_id)

    async def fetch_best_runs(self, count: int) -> list[RunRecord]:
        """Return up to ``count`` players' best runs, best first, ties in insertion order."""
        try:
            members = await self.redis.zrange(self.key("runs", "best"), 0, count - 1)
            async with self.redis.pipeline(transaction=False) as pipe:
                for member in members:
                    pipe.hgetall(self.key("run", member))
                rows = await pipe.execute()
        except RedisError as exc:
            raise StorageUnavailableError("Failed to load runs") from exc

        return [_run_from_row(row) for row in rows if row]

    async def upsert_hero(self, hero: HeroSubmission, updated_at: float) -> bool:
        """Store ``hero`` unless the existing row already has an equal or higher level."""
        try:
            applied = await self._hero_upsert(
                keys=[self.hero_key(hero.player_name), self.key("heroes")],
                args=[
                    hero.player_name,
                    hero.hero_id,
                    hero.hero_level,
                    hero.rarest_artifact_def_id,
                    repr(updated_at),
                    normalize_name(hero.player_name),
                ],
            )
        except RedisError as exc:
            raise StorageUnavailableError("Failed to save hero") from exc
        return bool(applied)

    async def fetch_heroes(self) -> list[HeroRecord]:
        try:
            names = await self.redis.zrange(self.key("heroes"), 0, -1)
            async with self.redis.pipeline(transaction=False) as pipe:
                for name in names:
                    pipe.hgetall(self.key("hero", name))
                rows = await pipe.execute()
        except RedisError as exc:
            raise StorageUnavailableError("Failed to load heroes") from exc

        return [
            HeroRecord(
                player_name=row["player_name"],
                hero_id=int(row["hero_id"]),
                hero_level=int(row["hero_level"]),
                rarest_artifact_def_id=int(row["rarest_artifact_def_id"]),
                updated_at=_timestamp(row["updated_at"]),
            )
            for row in rows
            if row
        ]

    async def ping(self) -> bool:
        response = await self.redis.ping()
        return bool(response)
