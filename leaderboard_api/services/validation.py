"""Normalization of raw submission payloads into storable records.

Run submissions are rejected when a score field is missing or out of range.
Hero submissions are never rejected: every field is coerced and clamped.
"""

from __future__ import annotations

import math
import re
from typing import Any

from leaderboard_api.models.records import HeroSubmission, RunSubmission, TeamHeroIds

DEFAULT_PLAYER_NAME = "Player"
MAX_PLAYER_NAME_LENGTH = 10
MAX_TEAM_SIZE = 5
MAX_TEAM_STRING_LENGTH = 20
MIN_HERO_SLOT_ID = -1

DUNGEON_TIER_RANGE = (0, 10)
WAVE_RANGE = (1, 9999)
BOSS_HP_RANGE = (0, 999_999)
HERO_ID_RANGE = (0, 19)
HERO_LEVEL_RANGE = (1, 80)
MIN_ARTIFACT_DEF_ID = -1

# Plain ASCII decimal spellings only; no digit separators or other scripts.
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
DECIMAL_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")


class SubmissionRejectedError(Exception):
    """Raised when a run submission cannot be stored."""

    reason = "invalid"

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(message)


class MissingFieldError(SubmissionRejectedError):
    reason = "missing field"

    def __init__(self, field: str):
        super().__init__(field, f"{field} is required")


class OutOfRangeError(SubmissionRejectedError):
    reason = "out of range"

    def __init__(self, field: str, low: int, high: int):
        super().__init__(field, f"{field} must be an integer between {low} and {high}")


def _strict_int(value: Any) -> int | None:
    # bool is an int subclass but never a valid score.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        return int(text) if INTEGER_PATTERN.fullmatch(text) else None
    return None


def _lenient_int(value: Any, default: int) -> int:
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not DECIMAL_PATTERN.fullmatch(text):
            return default
        parsed = float(text)
        return int(parsed) if math.isfinite(parsed) else default
    strict = _strict_int(value)
    return default if strict is None else strict


def _clamp(value: int, low: int, high: int | None = None) -> int:
    value = max(value, low)
    if high is not None:
        value = min(value, high)
    return value


def normalize_player_name(value: Any) -> str:
    if value is None:
        return DEFAULT_PLAYER_NAME
    name = str(value).strip()[:MAX_PLAYER_NAME_LENGTH].strip()
    return name or DEFAULT_PLAYER_NAME


def normalize_team_hero_ids(value: Any) -> TeamHeroIds:
    if isinstance(value, list):
        return [
            _clamp(_lenient_int(item, MIN_HERO_SLOT_ID), MIN_HERO_SLOT_ID)
            for item in value[:MAX_TEAM_SIZE]
        ]
    if isinstance(value, str):
        return value[:MAX_TEAM_STRING_LENGTH] or None
    return None


def _ranged_field(payload: dict[str, Any], field: str, bounds: tuple[int, int], default: int | None = None) -> int:
    raw = payload.get(field)
    if raw is None:
        if default is None:
            raise MissingFieldError(field)
        return default

    low, high = bounds
    value = _strict_int(raw)
    if value is None or not low <= value <= high:
        raise OutOfRangeError(field, low, high)
    return value


def validate_run(payload: dict[str, Any]) -> RunSubmission:
    # Required fields are checked before ranges so a partial payload reports what is missing.
    for field in ("wave", "boss_hp_left"):
        if payload.get(field) is None:
            raise MissingFieldError(field)

    return RunSubmission(
        player_name=normalize_player_name(payload.get("player_name")),
        dungeon_tier=_ranged_field(payload, "dungeon_tier", DUNGEON_TIER_RANGE, default=DUNGEON_TIER_RANGE[0]),
        wave=_ranged_field(payload, "wave", WAVE_RANGE),
        boss_hp_left=_ranged_field(payload, "boss_hp_left", BOSS_HP_RANGE),
        team_hero_ids=normalize_team_hero_ids(payload.get("team_hero_ids")),
    )


def validate_hero(payload: dict[str, Any]) -> HeroSubmission:
    return HeroSubmission(
        player_name=normalize_player_name(payload.get("player_name")),
        hero_id=_clamp(_lenient_int(payload.get("hero_id"), HERO_ID_RANGE[0]), *HERO_ID_RANGE),
        hero_level=_clamp(_lenient_int(payload.get("hero_level"), HERO_LEVEL_RANGE[0]), *HERO_LEVEL_RANGE),
        rarest_artifact_def_id=_clamp(
            _lenient_int(payload.get("rarest_artifact_def_id"), MIN_ARTIFACT_DEF_ID),
            MIN_ARTIFACT_DEF_ID,
        ),
    )
