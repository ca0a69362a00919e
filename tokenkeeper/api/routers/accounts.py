"""Account management routes."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends

from ...core.errors import AccountNotFound, ValidationError
from ...core.time import utcnow
from ...models import account_to_dict
from ..deps import Services, get_services, json_body, require_app_secret

router = APIRouter(
    prefix="/api", tags=["accounts"], dependencies=[Depends(require_app_secret)]
)

# JSON key -> Account field accepted by PATCH /accounts/{id}.
_EDITABLE_FIELDS = {
    "label": "label",
    "accessToken": "access_token",
    "refreshToken": "refresh_token",
    "csrfToken": "csrf_token",
    "clientId": "client_id",
    "clientSecret": "client_secret",
}


def _ids_from(body: Dict[str, Any]) -> Optional[List[str]]:
    ids = body.get("ids")
    if ids is None:
        return None
    if not isinstance(ids, list) or not all(isinstance(item, str) for item in ids):
        raise ValidationError("ids must be a list of strings")
    return ids


@router.get("/accounts")
def list_accounts(services: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    return [account_to_dict(account) for account in services.accounts.list()]


@router.post("/accounts", status_code=201)
async def add_account(
    body: Dict[str, Any] = Depends(json_body),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """Desktop-style add: import an account from its refresh token."""

    refresh_token = body.get("refreshToken")
    if not refresh_token or not isinstance(refresh_token, str):
        raise ValidationError("Missing refreshToken")
    account = await services.oauth.add_by_refresh_token(refresh_token, body.get("provider"))
    return account_to_dict(account)


@router.delete("/accounts")
def delete_accounts(
    body: Dict[str, Any] = Depends(json_body),
    services: Services = Depends(get_services),
) -> Dict[str, int]:
    ids = _ids_from(body)
    if not ids:
        raise ValidationError("Missing ids")
    return {"deleted": services.accounts.delete_many(ids)}


@router.api_route("/accounts/export", methods=["GET", "POST"])
def export_accounts(
    body: Dict[str, Any] = Depends(json_body),
    services: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    """Full credential bundles, optionally restricted to ``ids``."""

    ids = _ids_from(body)
    accounts = services.accounts.list()
    if ids:
        wanted = set(ids)
        accounts = [account for account in accounts if account.id in wanted]
    return [account_to_dict(account) for account in accounts]


@router.post("/accounts/refresh")
async def refresh_accounts(
    body: Dict[str, Any] = Depends(json_body),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """Run the batch coordinator over stored accounts."""

    report = await services.batch.refresh_many(
        services.accounts.list(), force_all=bool(body.get("force"))
    )
    return {
        "results": [asdict(result) for result in report.results],
        "accounts": [account_to_dict(account) for account in report.updated],
    }


@router.get("/accounts/{account_id}")
def get_account(account_id: str, services: Services = Depends(get_services)) -> Dict[str, Any]:
    account = services.accounts.get(account_id)
    if account is None:
        raise AccountNotFound("Account not found")
    return account_to_dict(account)


@router.patch("/accounts/{account_id}/refresh")
async def refresh_account(
    account_id: str, services: Services = Depends(get_services)
) -> Dict[str, Any]:
    account = await services.refresher.refresh_by_id(account_id, sync_usage=False)
    return account_to_dict(account)


@router.patch("/accounts/{account_id}/sync")
async def sync_account(
    account_id: str, services: Services = Depends(get_services)
) -> Dict[str, Any]:
    account = await services.refresher.refresh_by_id(account_id, sync_usage=True)
    return account_to_dict(account)


@router.patch("/accounts/{account_id}")
def update_account(
    account_id: str,
    body: Dict[str, Any] = Depends(json_body),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    account = services.accounts.get(account_id)
    if account is None:
        raise AccountNotFound("Account not found")

    changes: Dict[str, Any] = {}
    for key, field_name in _EDITABLE_FIELDS.items():
        value = body.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{key} must be a string")
        changes[field_name] = value
    changes["updated_at"] = utcnow()

    updated = services.accounts.save(account.model_copy(update=changes))
    return account_to_dict(updated)


@router.delete("/accounts/{account_id}")
def delete_account(account_id: str, services: Services = Depends(get_services)) -> Dict[str, int]:
    return {"deleted": services.accounts.delete_many([account_id])}


__all__ = ["router"]
