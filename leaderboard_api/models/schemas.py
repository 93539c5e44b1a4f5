"""Pydantic response schemas for the public leaderboard API.

Request bodies are accepted as plain JSON objects and normalized by the
validation service, so only responses and error envelopes are modelled here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class ErrorBody(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    error: ErrorBody


class RunCreated(BaseModel):
    id: int


class HeroAccepted(BaseModel):
    ok: Literal[True] = True


class RunRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    player_name: str
    dungeon_tier: int
    wave: int
    boss_hp_left: int
    team_hero_ids: list[int] | str | None = None
    created_at: datetime


class HeroRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_name: str
    hero_id: int
    hero_level: int
    rarest_artifact_def_id: int
    updated_at: datetime


class HealthResponse(BaseModel):
    status: Literal["ok"]


class ReadyResponse(BaseModel):
    status: Literal["ok"]
