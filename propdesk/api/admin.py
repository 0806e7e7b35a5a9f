from __future__ import annotations

from fastapi import APIRouter, Depends

from propdesk.dependencies import get_account_service, require_admin
from propdesk.models.challenge import DbSource
from propdesk.schemas.challenge import Challenge
from propdesk.schemas.requests import (
    AssignCredentials,
    AssignPhaseCredentials,
    BreachRequest,
    EditAccount,
    NoteRequest,
    RejectRequest,
)
from propdesk.schemas.views import AdminView
from propdesk.services.account_service import AccountService

router = APIRouter(prefix="/api/admin", tags=["admin"])

CHALLENGE_PATH = "/challenges/{source}/{challenge_id}"


@router.get("/overview", response_model=AdminView)
async def overview(
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.load_admin_view()


@router.get("/users/{user_id}/accounts")
async def user_accounts(
    user_id: str,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    """Accounts of one user split for the breach tab."""
    accounts = await svc.load_user_accounts(user_id)
    return {
        group: [c.model_dump(mode="json", by_alias=True) for c in rows]
        for group, rows in accounts.items()
    }


@router.post("/users/{user_id}/affiliate-code")
async def assign_affiliate_code(
    user_id: str,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    data = await svc.assign_affiliate_code(user_id, actor=actor)
    return {"success": True, "data": data}


@router.post(CHALLENGE_PATH + "/credentials", response_model=Challenge)
async def assign_credentials(
    source: DbSource,
    challenge_id: str,
    body: AssignCredentials,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.assign_credentials(
        source, challenge_id, login=body.login, password=body.password,
        server=body.server, actor=actor,
    )


@router.post(CHALLENGE_PATH + "/phase-credentials", response_model=Challenge)
async def assign_phase_credentials(
    source: DbSource,
    challenge_id: str,
    body: AssignPhaseCredentials,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.assign_phase_credentials(
        source, challenge_id, login=body.login, password=body.password,
        server=body.server, account_size=body.account_size, phase=body.phase, actor=actor,
    )


@router.put(CHALLENGE_PATH, response_model=Challenge)
async def edit_account(
    source: DbSource,
    challenge_id: str,
    body: EditAccount,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.edit_account(
        source, challenge_id, login=body.login, password=body.password,
        server=body.server, account_size=body.account_size, actor=actor,
    )


@router.post(CHALLENGE_PATH + "/credentials-sent", response_model=Challenge)
async def mark_credentials_sent(
    source: DbSource,
    challenge_id: str,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.mark_credentials_sent(source, challenge_id, actor=actor)


@router.post(CHALLENGE_PATH + "/pass")
async def mark_as_passed(
    source: DbSource,
    challenge_id: str,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    closed, created = await svc.mark_as_passed(source, challenge_id, actor=actor)
    return {
        "success": True,
        "passed": closed.model_dump(mode="json", by_alias=True),
        "next_phase": created.model_dump(mode="json", by_alias=True),
    }


@router.post(CHALLENGE_PATH + "/breach")
async def breach(
    source: DbSource,
    challenge_id: str,
    body: BreachRequest,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    await svc.breach(source, challenge_id, body.reason, actor=actor)
    return {"success": True}


@router.post(CHALLENGE_PATH + "/unbreach", response_model=Challenge)
async def unbreach(
    source: DbSource,
    challenge_id: str,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.unbreach(source, challenge_id, actor=actor)


@router.post(CHALLENGE_PATH + "/reject")
async def reject(
    source: DbSource,
    challenge_id: str,
    body: RejectRequest,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    await svc.reject(
        source, challenge_id, user_note=body.user_note, admin_note=body.admin_note, actor=actor
    )
    return {"success": True}


@router.post(CHALLENGE_PATH + "/internal-note")
async def save_internal_note(
    source: DbSource,
    challenge_id: str,
    body: NoteRequest,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    await svc.save_internal_note(source, challenge_id, body.note, actor=actor)
    return {"success": True}


@router.post(CHALLENGE_PATH + "/user-note")
async def send_user_note(
    source: DbSource,
    challenge_id: str,
    body: NoteRequest,
    actor: str = Depends(require_admin),
    svc: AccountService = Depends(get_account_service),
):
    await svc.send_user_note(source, challenge_id, body.note, actor=actor)
    return {"success": True}
