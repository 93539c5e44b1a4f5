"""Ordering rules for the run and hero leaderboards.

Runs rank by dungeon tier (higher first), then wave (higher first), then boss
health left (lower first), then submission time (earlier first). Heroes rank by
level (higher first), then the time that level was reached (earlier first).
Both boards hide the reserved "dev" name and cap how many rows a query returns.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from leaderboard_api.models.records import HeroRecord, RunRecord

DEFAULT_LIMIT = 50
MAX_LIMIT = 100
EXCLUDED_NAME = "dev"


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def is_excluded(name: str) -> bool:
    return normalize_name(name) == EXCLUDED_NAME


def clamp_limit(limit: Any) -> int:
    """Resolve a requested row count, falling back to the default for junk input."""
    try:
        value = int(limit)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_LIMIT
    if value < 1:
        return DEFAULT_LIMIT
    return min(value, MAX_LIMIT)


def run_sort_key(run: RunRecord) -> tuple:
    return (-run.dungeon_tier, -run.wave, run.boss_hp_left, run.created_at)


def hero_sort_key(hero: HeroRecord) -> tuple:
    return (-hero.hero_level, hero.updated_at)


def best_per_player(runs: Iterable[RunRecord]) -> list[RunRecord]:
    """Keep each player's single best run, dropping excluded names.

    Among equally ranked runs the one seen first wins, so callers passing runs
    in insertion order get a stable result.
    """
    best: dict[str, RunRecord] = {}
    for run in runs:
        key = normalize_name(run.player_name)
        if key == EXCLUDED_NAME:
            continue
        current = best.get(key)
        if current is None or run_sort_key(run) < run_sort_key(current):
            best[key] = run
    return list(best.values())


def top_runs(runs: Iterable[RunRecord], limit: Any = None) -> list[RunRecord]:
    ranked = sorted(best_per_player(runs), key=run_sort_key)
    return ranked[: clamp_limit(limit)]


def top_heroes(heroes: Iterable[HeroRecord], limit: Any = None) -> list[HeroRecord]:
    visible = [hero for hero in heroes if not is_excluded(hero.player_name)]
    visible.sort(key=hero_sort_key)
    return visible[: clamp_limit(limit)]
