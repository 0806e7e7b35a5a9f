"""Reconcile challenge rows from every source into admin and trader views."""
from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from decimal import Decimal

from propdesk.models.challenge import SOURCE_ORDER, ChallengeStatus, DbSource, DisplayStatus
from propdesk.schemas.challenge import Challenge, ResolvedChallenge, TraderAccount
from propdesk.schemas.profile import Profile
from propdesk.schemas.views import AdminStats, DashboardStats, Reconciliation, TraderView
from propdesk.services.status_machine import derive_display_status, redact
from propdesk.utils.metrics import UNRESOLVED_PROFILES

logger = logging.getLogger(__name__)

UNKNOWN_EMAIL = "Unknown"
UNKNOWN_NAME = "N/A"
UNKNOWN_FRIENDLY_ID = "N/A"
DEFAULT_BREACH_REASON = "Account breached due to rule violation"
DEFAULT_REJECTION_REASON = "Account rejected by admin"

_ACTIVE_DISPLAY = frozenset(
    {DisplayStatus.AWAITING_CONTRACT, DisplayStatus.CONTRACT_SIGNED, DisplayStatus.CREDENTIALS_GIVEN}
)


def tag_challenges(per_source: Mapping[DbSource, Iterable[Challenge]]) -> list[Challenge]:
    """Stamp each row with its source and concatenate in precedence order."""
    tagged: list[Challenge] = []
    for name in SOURCE_ORDER:
        for c in per_source.get(name, ()):
            if not c.user_id:
                continue
            tagged.append(c.model_copy(update={"db_source": name}))
    return tagged


def needs_provisioning(challenge: Challenge) -> bool:
    """Paid for, but missing credentials or not yet told about them."""
    if challenge.status == ChallengeStatus.PENDING_PAYMENT.value:
        return False
    return not challenge.is_provisioned or not challenge.credentials_sent


def resolve(challenge: Challenge, profiles: Mapping[str, Profile]) -> ResolvedChallenge:
    """Join one challenge to its owner's profile; missing owners get placeholders."""
    profile = profiles.get(challenge.user_id or "")
    source = challenge.db_source.value if challenge.db_source else "-"
    if profile is None:
        logger.warning(
            "Profile not found for user_id %s (challenge %s, source %s)",
            challenge.user_id, challenge.id, source,
        )
        UNRESOLVED_PROFILES.labels(source=source).inc()

    safe = redact(challenge)
    return ResolvedChallenge(
        **safe.model_dump(),
        user_email=(profile.email if profile else None) or UNKNOWN_EMAIL,
        user_name=(profile.display_name if profile else "") or UNKNOWN_NAME,
        friendly_id=(profile.friendly_id if profile else None) or UNKNOWN_FRIENDLY_ID,
        display_status=derive_display_status(challenge),
    )


def reconcile(challenges: Iterable[Challenge], profiles: Mapping[str, Profile]) -> Reconciliation:
    """Split tagged challenges into the admin pending queue, rejected list and accounts."""
    result = Reconciliation()
    for c in challenges:
        if c.status == ChallengeStatus.PENDING_PAYMENT.value:
            continue
        if needs_provisioning(c):
            bucket = result.rejected if c.status == ChallengeStatus.REJECTED.value else result.pending
            bucket.append(resolve(c, profiles))
        if c.is_provisioned:
            result.accounts.append(resolve(c, profiles))

    logger.info(
        "Reconciled challenges: %d pending, %d rejected, %d accounts",
        len(result.pending), len(result.rejected), len(result.accounts),
    )
    return result


def to_trader_account(c: Challenge, display: DisplayStatus) -> TraderAccount:
    safe = redact(c)
    update: dict = {}
    if display is not DisplayStatus.BREACHED and display is not DisplayStatus.CREDENTIALS_GIVEN:
        update["trading_account_password"] = None
    return TraderAccount(
        **safe.model_copy(update=update).model_dump(),
        display_status=display,
        breach_reason=(c.admin_note or DEFAULT_BREACH_REASON) if display is DisplayStatus.BREACHED else None,
        rejection_reason=(c.admin_note or DEFAULT_REJECTION_REASON) if display is DisplayStatus.REJECTED else None,
    )


def trader_view(user_id: str, challenges: Iterable[Challenge]) -> TraderView:
    """Dashboard categories for one trader's challenges."""
    view = TraderView(user_id=user_id)
    buckets = {
        DisplayStatus.BREACHED: view.breached,
        DisplayStatus.REJECTED: view.rejected,
        DisplayStatus.PASSED: view.passed,
        DisplayStatus.AWAITING_CREDENTIALS: view.awaiting,
    }
    for c in challenges:
        display = derive_display_status(c)
        if display is None:
            continue
        account = to_trader_account(c, display)
        if display in _ACTIVE_DISPLAY:
            view.active.append(account)
            if display is DisplayStatus.AWAITING_CONTRACT and view.unsigned_contract_id is None:
                view.unsigned_contract_id = account.id
        else:
            buckets[display].append(account)

    view.stats = summarize(view)
    return view


def summarize(view: TraderView) -> DashboardStats:
    """Balances are not tracked live here, so balance equals account size."""
    total_size = sum((a.account_size for a in view.active), Decimal("0"))
    total_balance = total_size
    return DashboardStats(
        accounts=len(view.active),
        pending=len(view.awaiting) + len(view.rejected),
        total_account_size=total_size,
        total_balance=total_balance,
        profit=total_balance - total_size,
    )


def admin_stats(challenges: Iterable[Challenge]) -> AdminStats:
    rows = list(challenges)
    return AdminStats(
        total=len(rows),
        with_credentials=sum(1 for c in rows if c.is_provisioned),
        without_credentials=sum(1 for c in rows if not c.is_provisioned),
        by_status=dict(Counter(c.status for c in rows)),
        by_source=dict(Counter(c.db_source.value for c in rows if c.db_source)),
        total_account_size=sum((c.account_size for c in rows), Decimal("0")),
        total_amount_paid=sum((c.amount_paid or Decimal("0") for c in rows), Decimal("0")),
    )
