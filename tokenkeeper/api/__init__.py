"""API assembly helpers."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import TokenKeeperError
from .routers import ALL_ROUTERS

logger = logging.getLogger(__name__)


def register_routes(app: FastAPI) -> None:
    """Attach all application routers to the given app."""

    for router in ALL_ROUTERS:
        app.include_router(router)


async def _handle_domain_error(request: Request, exc: TokenKeeperError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def register_error_handlers(app: FastAPI) -> None:
    """Render domain errors as ``{"error": message}`` with their status code."""

    app.add_exception_handler(TokenKeeperError, _handle_domain_error)


__all__ = ["register_error_handlers", "register_routes"]
