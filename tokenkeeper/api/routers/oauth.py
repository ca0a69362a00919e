"""OAuth login routes."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...core.errors import ValidationError
from ...models import account_to_dict
from ..deps import Services, get_services, json_body, require_app_secret

router = APIRouter(
    prefix="/api/oauth", tags=["oauth"], dependencies=[Depends(require_app_secret)]
)


@router.post("/initiate")
async def oauth_initiate(
    body: Dict[str, Any] = Depends(json_body),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    """Start a PKCE login and return the authorize URL with its state."""

    return await services.oauth.initiate(body.get("provider"))


@router.post("/complete")
async def oauth_complete(
    body: Dict[str, Any] = Depends(json_body),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """Exchange the callback's code and persist the resulting account."""

    callback_url = body.get("callbackUrl")
    if not callback_url or not isinstance(callback_url, str):
        raise ValidationError("Missing callbackUrl")
    account = await services.oauth.complete(callback_url)
    return {"account": account_to_dict(account)}


__all__ = ["router"]
