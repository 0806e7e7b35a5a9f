from __future__ import annotations

from fastapi import APIRouter, Depends

from propdesk.dependencies import get_account_service, require_dashboard
from propdesk.models.challenge import DbSource
from propdesk.schemas.challenge import TraderAccount
from propdesk.schemas.views import TraderView
from propdesk.services.account_service import AccountService
from propdesk.services.reconciler import to_trader_account
from propdesk.services.status_machine import derive_display_status

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/{user_id}", response_model=TraderView)
async def trader_dashboard(
    user_id: str = Depends(require_dashboard),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.load_trader_view(user_id)


@router.post(
    "/{user_id}/challenges/{source}/{challenge_id}/sign-contract",
    response_model=TraderAccount,
)
async def sign_contract(
    source: DbSource,
    challenge_id: str,
    user_id: str = Depends(require_dashboard),
    svc: AccountService = Depends(get_account_service),
):
    updated = await svc.sign_contract(source, challenge_id, user_id)
    return to_trader_account(updated, derive_display_status(updated))
