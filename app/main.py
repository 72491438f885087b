"""
FastAPI application entrypoint for the Spotify shortcut gateway.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import api_router, router
from app.core.config import get_settings
from app.core.errors import ErrorCode, GatewayError, NoAccessTokenError
from app.core.logging import configure_logging

logger = logging.getLogger(__name__)


def _error_response(error: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def _gateway_error(_: Request, exc: GatewayError) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(NoAccessTokenError)
    async def _no_access_token(_: Request, exc: NoAccessTokenError) -> JSONResponse:
        return _error_response(
            GatewayError(
                ErrorCode.NO_ACCESS_TOKEN,
                "No access token available. Please visit /login to reconnect.",
                HTTPStatus.UNAUTHORIZED,
            )
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (HTTPStatus.NOT_FOUND, HTTPStatus.METHOD_NOT_ALLOWED):
            return _error_response(
                GatewayError(ErrorCode.NOT_FOUND, "Not found", HTTPStatus.NOT_FOUND)
            )
        return _error_response(
            GatewayError(ErrorCode.INVALID_REQUEST, str(exc.detail), exc.status_code)
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(
            GatewayError(
                ErrorCode.INTERNAL_ERROR,
                "Internal server error",
                HTTPStatus.INTERNAL_SERVER_ERROR,
            )
        )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Spotify Shortcut Gateway",
        version="0.1.0",
        description="Spotify login and playback control for phone automations.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Automation-Key"],
    )
    _register_exception_handlers(app)
    app.include_router(router)
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
