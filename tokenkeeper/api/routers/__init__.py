"""Aggregate API routers."""

from fastapi import APIRouter

from .accounts import router as accounts_router
from .oauth import router as oauth_router
from .system import router as system_router

ALL_ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    oauth_router,
    accounts_router,
)

__all__ = ["ALL_ROUTERS"]
