import hmac

from fastapi import Header, HTTPException, Request

from propdesk.config import GlobalConfig
from propdesk.services.account_service import AccountService
from propdesk.utils.logging import current_user_id


def get_settings(request: Request) -> GlobalConfig:
    return request.app.state.settings


def get_account_service(request: Request) -> AccountService:
    """Get the AccountService from app state"""
    return request.app.state.account_service


def _check_token(expected: str, presented: str | None) -> None:
    if not expected:
        raise HTTPException(status_code=503, detail="API token not configured")
    if not presented or not hmac.compare_digest(expected, presented):
        raise HTTPException(status_code=403, detail="Invalid API token")


async def require_admin(
    request: Request, x_admin_token: str | None = Header(default=None)
) -> str:
    """Admin routes: shared admin token. Returns the actor name for audit logs."""
    _check_token(get_settings(request).admin_api_token, x_admin_token)
    return "admin"


async def require_dashboard(
    request: Request, user_id: str, x_api_token: str | None = Header(default=None)
) -> str:
    """Trader routes are called by the dashboard backend on behalf of ``user_id``."""
    _check_token(get_settings(request).dashboard_api_token, x_api_token)
    current_user_id.set(user_id)
    return user_id
