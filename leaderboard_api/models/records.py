"""Domain records shared by the validator, the ranking policy and storage."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

TeamHeroIds = list[int] | str | None


@dataclass(slots=True, frozen=True)
class RunSubmission:
    player_name: str
    dungeon_tier: int
    wave: int
    boss_hp_left: int
    team_hero_ids: TeamHeroIds = None


@dataclass(slots=True, frozen=True)
class RunRecord:
    id: int
    player_name: str
    dungeon_tier: int
    wave: int
    boss_hp_left: int
    team_hero_ids: TeamHeroIds
    created_at: datetime


@dataclass(slots=True, frozen=True)
class HeroSubmission:
    player_name: str
    hero_id: int
    hero_level: int
    rarest_artifact_def_id: int


@dataclass(slots=True, frozen=True)
class HeroRecord:
    player_name: str
    hero_id: int
    hero_level: int
    rarest_artifact_def_id: int
    updated_at: datetime
