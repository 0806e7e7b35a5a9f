"""Challenge lifecycle: display status derivation and transition planning.

``derive_display_status`` is the single place a challenge's trader-facing
status is computed; admin and trader views both call it. Rules are checked
in order and the first match wins:

    1. status breached          -> BREACHED (password always redacted)
    2. status rejected          -> REJECTED
    3. status pending_payment   -> None (never shown)
    4. status passed            -> PASSED
    5. no trading account id    -> AWAITING_CREDENTIALS
    6. contract not signed      -> AWAITING_CONTRACT
    7. not visible and not sent -> CONTRACT_SIGNED
    8. otherwise                -> CREDENTIALS_GIVEN

The ``plan_*`` functions validate a transition against the current row and
return the column values to write. They raise TransitionError before any
write happens; callers only touch storage with a returned plan.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, TypeVar

from propdesk.errors import TransitionError
from propdesk.models.challenge import ChallengeStatus, DisplayStatus
from propdesk.schemas.challenge import Challenge

REDACTED_PASSWORD = "HIDDEN - ACCOUNT BREACHED"
MAX_PHASE = 3
VALID_PHASES = frozenset({1, 2, 3})

TERMINAL_STATUSES = frozenset(
    {ChallengeStatus.BREACHED.value, ChallengeStatus.REJECTED.value, ChallengeStatus.PASSED.value}
)

ChallengeT = TypeVar("ChallengeT", bound=Challenge)


def derive_display_status(challenge: Challenge) -> DisplayStatus | None:
    status = challenge.status
    if status == ChallengeStatus.BREACHED.value:
        return DisplayStatus.BREACHED
    if status == ChallengeStatus.REJECTED.value:
        return DisplayStatus.REJECTED
    if status == ChallengeStatus.PENDING_PAYMENT.value:
        return None
    if status == ChallengeStatus.PASSED.value:
        return DisplayStatus.PASSED
    if not challenge.is_provisioned:
        return DisplayStatus.AWAITING_CREDENTIALS
    if not challenge.contract_signed:
        return DisplayStatus.AWAITING_CONTRACT
    if not (challenge.credentials_visible or challenge.credentials_sent):
        return DisplayStatus.CONTRACT_SIGNED
    return DisplayStatus.CREDENTIALS_GIVEN


def credentials_displayable(challenge: Challenge) -> bool:
    return derive_display_status(challenge) is DisplayStatus.CREDENTIALS_GIVEN


def redact(challenge: ChallengeT) -> ChallengeT:
    """Copy of ``challenge`` safe for any view: breached rows lose their password."""
    if challenge.status == ChallengeStatus.BREACHED.value:
        return challenge.model_copy(
            update={"trading_account_password": REDACTED_PASSWORD, "credentials_visible": False}
        )
    return challenge


# ---------------------------------------------------------------------------
# Transition planning
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PhaseProgression:
    """Writes for "mark as passed": close the current row, open the next phase."""

    close: dict[str, Any]
    next_phase: dict[str, Any]


def _now() -> datetime:
    return datetime.now(UTC)


def _forbid(challenge: Challenge, statuses: set[str] | frozenset[str], action: str) -> None:
    if challenge.status in statuses:
        raise TransitionError(f"Cannot {action} a challenge with status '{challenge.status}'")


def require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise TransitionError(f"{field} is required")
    return value.strip()


def _require_positive(amount: Decimal | None, field: str) -> Decimal:
    if amount is None or amount <= 0:
        raise TransitionError(f"{field} must be positive")
    return amount


_NOT_PROVISIONABLE = TERMINAL_STATUSES | {ChallengeStatus.PENDING_PAYMENT.value}


def plan_assign_credentials(
    challenge: Challenge, login: str, password: str | None, server: str | None
) -> dict[str, Any]:
    _forbid(challenge, _NOT_PROVISIONABLE, "assign credentials to")
    return {
        "trading_account_id": require_text(login, "Trading login"),
        "trading_account_password": password,
        "trading_account_server": server,
        "status": ChallengeStatus.ACTIVE.value,
        "credentials_sent": False,
    }


def plan_assign_phase_credentials(
    challenge: Challenge,
    login: str,
    password: str | None,
    server: str | None,
    account_size: Decimal,
    phase: int,
) -> dict[str, Any]:
    if phase not in VALID_PHASES:
        raise TransitionError(f"Phase must be one of {sorted(VALID_PHASES)}")
    values = plan_assign_credentials(challenge, login, password, server)
    values["account_size"] = _require_positive(account_size, "Account size")
    values["phase"] = phase
    return values


def plan_edit_account(
    challenge: Challenge,
    login: str,
    password: str | None,
    server: str | None,
    account_size: Decimal,
) -> dict[str, Any]:
    return {
        "trading_account_id": require_text(login, "Trading login"),
        "trading_account_password": password,
        "trading_account_server": server,
        "account_size": _require_positive(account_size, "Account size"),
    }


def plan_mark_credentials_sent(challenge: Challenge) -> dict[str, Any]:
    _forbid(challenge, _NOT_PROVISIONABLE, "release credentials for")
    if not challenge.is_provisioned:
        raise TransitionError("Challenge has no trading credentials to release")
    return {"credentials_sent": True, "credentials_released_at": _now()}


def plan_sign_contract(challenge: Challenge, *, release_credentials: bool = True) -> dict[str, Any]:
    _forbid(challenge, _NOT_PROVISIONABLE, "sign the contract for")
    if not challenge.is_provisioned:
        raise TransitionError("Contract can only be signed once credentials are assigned")
    if challenge.contract_signed:
        raise TransitionError("Contract already signed")
    now = _now()
    values: dict[str, Any] = {"contract_signed": True, "contract_signed_at": now}
    if release_credentials:
        values["credentials_visible"] = True
        values["credentials_released_at"] = now
    return values


def plan_breach(challenge: Challenge, reason: str) -> dict[str, Any]:
    _forbid(challenge, _NOT_PROVISIONABLE, "breach")
    return {
        "status": ChallengeStatus.BREACHED.value,
        "admin_note": require_text(reason, "Breach reason"),
    }


def plan_unbreach(challenge: Challenge) -> dict[str, Any]:
    if challenge.status != ChallengeStatus.BREACHED.value:
        raise TransitionError("Only breached accounts can be unbreached")
    return {"status": ChallengeStatus.ACTIVE.value, "admin_note": None}


def plan_reject(challenge: Challenge, admin_note: str) -> dict[str, Any]:
    _forbid(challenge, TERMINAL_STATUSES, "reject")
    return {"status": ChallengeStatus.REJECTED.value, "admin_note": admin_note or None}


def plan_mark_as_passed(challenge: Challenge) -> PhaseProgression:
    """Passing a phase closes this row and creates a fresh one for the next phase.

    The current row keeps its account_size; the new row doubles it and is free.
    """
    _forbid(challenge, _NOT_PROVISIONABLE, "pass")
    current_phase = challenge.effective_phase
    if current_phase >= MAX_PHASE:
        raise TransitionError("Live accounts have no next phase")
    if not challenge.user_id:
        raise TransitionError("Challenge has no owner")

    return PhaseProgression(
        close={"status": ChallengeStatus.PASSED.value, "phase": current_phase},
        next_phase={
            "user_id": challenge.user_id,
            "challenge_type": challenge.challenge_type or "competition",
            "challenge_type_id": challenge.challenge_type_id,
            "account_size": challenge.account_size * 2,
            "amount_paid": Decimal("0"),
            "status": ChallengeStatus.PENDING_CREDENTIALS.value,
            "phase": current_phase + 1,
            "credentials_sent": False,
        },
    )
