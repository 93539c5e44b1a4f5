"""FastAPI application wiring for routes, error handlers, middleware and lifespan."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leaderboard_api.api.errors import APIError
from leaderboard_api.api.routes import router
from leaderboard_api.config import Settings
from leaderboard_api.logging_config import configure_logging
from leaderboard_api.models.schemas import ErrorBody, ErrorResponse
from leaderboard_api.services.leaderboard import LeaderboardService
from leaderboard_api.services.rate_limiter import FixedWindowRateLimiter
from leaderboard_api.storage.records import LeaderboardStore
from leaderboard_api.storage.redis import create_redis_client

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def app_lifespan(app: FastAPI):
        redis_client = create_redis_client(settings.redis_url)
        app.state.redis = redis_client
        app.state.leaderboard_service = LeaderboardService(
            LeaderboardStore(redis_client, namespace=settings.namespace),
            FixedWindowRateLimiter(
                window_seconds=settings.rate_limit_window_seconds,
                max_submissions=settings.rate_limit_max_submissions,
            ),
        )
        logger.info("Leaderboard API started (namespace=%s)", settings.namespace)
        try:
            yield
        finally:
            await redis_client.aclose()

    app = FastAPI(title="Dungeon Leaderboard API", version="1.0.0", lifespan=app_lifespan)
    app.state.settings = settings

    # The game client calls the API straight from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(APIError)
    async def api_error_handler(_: Request, exc: APIError) -> JSONResponse:
        payload = ErrorResponse(
            error=ErrorBody(code=exc.code, message=exc.message, details=exc.details),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=payload.model_dump(exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        payload = ErrorResponse(
            error=ErrorBody(
                code="VALIDATION_ERROR",
                message="Request body must be a JSON object",
                details={"errors": exc.errors()},
            ),
        )
        return JSONResponse(status_code=400, content=payload.model_dump(exclude_none=True))

    app.include_router(router)
    return app


app = create_app()
