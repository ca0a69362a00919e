"""System-level API endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from ..deps import Services, get_services

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> Dict[str, bool]:
    """Simple readiness check."""

    return {"ok": True}


@router.get("/config")
def get_config(request: Request, services: Services = Depends(get_services)) -> Dict[str, Any]:
    """Expose non-secret deployment choices."""

    return {
        "backend": services.backend.name,
        "redirect_uri": services.backend.redirect_uri,
        "secret_configured": bool(request.app.state.app_secret),
    }


__all__ = ["router"]
