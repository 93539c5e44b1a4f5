"""HTTP route handlers for leaderboard operations and service health checks."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request

from leaderboard_api.api.errors import (
    invalid_submission,
    rate_limited,
    storage_error,
    store_unavailable,
)
from leaderboard_api.models.schemas import (
    HealthResponse,
    HeroAccepted,
    HeroRow,
    ReadyResponse,
    RunCreated,
    RunRow,
)
from leaderboard_api.services.leaderboard import LeaderboardService
from leaderboard_api.services.rate_limiter import RateLimitedError
from leaderboard_api.services.validation import SubmissionRejectedError
from leaderboard_api.storage.records import StorageUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service(request: Request) -> LeaderboardService:
    return request.app.state.leaderboard_service


def get_client_id(request: Request) -> str:
    if request.app.state.settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is None:
        return "unknown"
    return request.client.host


@router.post("/leaderboard", response_model=RunCreated, status_code=201)
async def submit_run(
    payload: dict[str, Any] = Body(...),
    client_id: str = Depends(get_client_id),
    service: LeaderboardService = Depends(get_service),
) -> RunCreated:
    try:
        run_id = await service.submit_run(client_id, payload)
    except RateLimitedError as exc:
        raise rate_limited() from exc
    except SubmissionRejectedError as exc:
        logger.warning("Rejected run from %s: %s", client_id, exc.message)
        raise invalid_submission(exc.field, exc.reason, exc.message) from exc
    except StorageUnavailableError as exc:
        logger.exception("Run submission from %s failed", client_id)
        raise storage_error("Failed to save") from exc
    return RunCreated(id=run_id)


@router.get("/leaderboard", response_model=list[RunRow])
async def get_runs(
    limit: str | None = Query(default=None),
    service: LeaderboardService = Depends(get_service),
) -> list[RunRow]:
    try:
        runs = await service.query_runs(limit)
    except StorageUnavailableError as exc:
        logger.exception("Loading the run leaderboard failed")
        raise storage_error("Failed to load") from exc
    return [RunRow.model_validate(run) for run in runs]


@router.post("/leaderboard-hero", response_model=HeroAccepted, status_code=201)
async def submit_hero(
    payload: dict[str, Any] = Body(...),
    client_id: str = Depends(get_client_id),
    service: LeaderboardService = Depends(get_service),
) -> HeroAccepted:
    # A submission that does not beat the stored level is still acknowledged.
    try:
        await service.submit_hero(client_id, payload)
    except RateLimitedError as exc:
        raise rate_limited() from exc
    except StorageUnavailableError as exc:
        logger.exception("Hero submission from %s failed", client_id)
        raise storage_error("Failed to save") from exc
    return HeroAccepted()


@router.get("/leaderboard-hero", response_model=list[HeroRow])
async def get_heroes(
    limit: str | None = Query(default=None),
    service: LeaderboardService = Depends(get_service),
) -> list[HeroRow]:
    try:
        heroes = await service.query_heroes(limit)
    except StorageUnavailableError as exc:
        logger.exception("Loading the hero leaderboard failed")
        raise storage_error("Failed to load") from exc
    return [HeroRow.model_validate(hero) for hero in heroes]


# These probes are intended for infrastructure and do not need to appear in API docs.
@router.get("/healthz", response_model=HealthResponse, include_in_schema=False)
async def healthz() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/readyz", response_model=ReadyResponse, include_in_schema=False)
async def readyz(service: LeaderboardService = Depends(get_service)) -> ReadyResponse:
    try:
        is_ready = await service.ping()
    except Exception as exc:
        raise store_unavailable() from exc

    if not is_ready:
        raise store_unavailable()
    return ReadyResponse(status="ok")
