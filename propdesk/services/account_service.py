from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from propdesk.config import GlobalConfig
from propdesk.db.session import SourceRegistry
from propdesk.errors import ChallengeNotFound, MutationFailed
from propdesk.models.challenge import SOURCE_ORDER, ChallengeStatus, DbSource
from propdesk.schemas.challenge import Challenge
from propdesk.schemas.profile import AuthUser
from propdesk.schemas.views import AdminView, TraderView
from propdesk.services import status_machine as sm
from propdesk.services.auth_directory import AuthDirectory
from propdesk.services.backend_client import BackendClient
from propdesk.services.profile_merger import build_user_directory, merge_profiles
from propdesk.services.reconciler import admin_stats, reconcile, tag_challenges, trader_view
from propdesk.services.source_fetcher import fetch_all_challenges, fetch_all_profiles
from propdesk.utils.logging import audit_log
from propdesk.utils.metrics import CHALLENGE_TRANSITIONS, SOURCE_FETCH_FAILURES

logger = logging.getLogger(__name__)


class AccountService:
    """Reads across all sources; writes to exactly the source a row came from."""

    def __init__(
        self,
        sources: SourceRegistry,
        auth: AuthDirectory,
        backend: BackendClient,
        settings: GlobalConfig | None = None,
    ):
        self._sources = sources
        self._auth = auth
        self._backend = backend
        self._settings = settings or GlobalConfig()

    @property
    def _timeout(self) -> float:
        return self._settings.source_fetch_timeout_sec

    # ---- reads ----

    async def load_admin_view(self) -> AdminView:
        profiles_by_source, auth_users, challenges_by_source = await asyncio.gather(
            fetch_all_profiles(self._sources, self._timeout),
            self._load_auth_users(),
            fetch_all_challenges(self._sources, self._timeout),
        )
        profiles = merge_profiles(
            [profiles_by_source[name] for name in SOURCE_ORDER], auth_users
        )
        challenges = tag_challenges(challenges_by_source)
        result = reconcile(challenges, profiles)
        return AdminView(
            pending=result.pending,
            rejected=result.rejected,
            phase1=result.accounts_in_phase(1),
            phase2=result.accounts_in_phase(2),
            live=result.accounts_in_phase(3),
            users=build_user_directory(profiles),
            stats=admin_stats(challenges),
        )

    async def _load_auth_users(self) -> list[AuthUser]:
        """Auth fallback users, bounded by the same timeout as each source."""
        try:
            return await asyncio.wait_for(self._auth.list_users(), self._timeout)
        except TimeoutError:
            logger.warning("Timed out fetching auth users after %.1fs", self._timeout)
            SOURCE_FETCH_FAILURES.labels(source="AUTH", kind="auth_users").inc()
            return []

    async def load_user_accounts(self, user_id: str) -> dict[str, list[Challenge]]:
        """One user's challenges from every source, split for the breach tab."""
        per_source = await fetch_all_challenges(self._sources, self._timeout, user_id=user_id)
        accounts = [sm.redact(c) for c in tag_challenges(per_source)]
        return {
            "active": [c for c in accounts if c.status != ChallengeStatus.BREACHED.value],
            "breached": [c for c in accounts if c.status == ChallengeStatus.BREACHED.value],
        }

    async def load_trader_view(self, user_id: str) -> TraderView:
        per_source = await fetch_all_challenges(self._sources, self._timeout, user_id=user_id)
        return trader_view(user_id, tag_challenges(per_source))

    # ---- admin mutations ----

    async def assign_credentials(
        self, source: DbSource, challenge_id: str, *, login: str,
        password: str | None, server: str | None, actor: str = "admin",
    ) -> Challenge:
        current = await self._get(source, challenge_id)
        values = sm.plan_assign_credentials(current, login, password, server)
        return await self._commit(source, current, values, "assign_credentials", actor)

    async def assign_phase_credentials(
        self, source: DbSource, challenge_id: str, *, login: str, password: str | None,
        server: str | None, account_size: Decimal, phase: int, actor: str = "admin",
    ) -> Challenge:
        current = await self._get(source, challenge_id)
        values = sm.plan_assign_phase_credentials(
            current, login, password, server, account_size, phase
        )
        return await self._commit(source, current, values, "assign_phase_credentials", actor)

    async def edit_account(
        self, source: DbSource, challenge_id: str, *, login: str, password: str | None,
        server: str | None, account_size: Decimal, actor: str = "admin",
    ) -> Challenge:
        current = await self._get(source, challenge_id)
        values = sm.plan_edit_account(current, login, password, server, account_size)
        return await self._commit(source, current, values, "edit_account", actor)

    async def mark_credentials_sent(
        self, source: DbSource, challenge_id: str, actor: str = "admin"
    ) -> Challenge:
        current = await self._get(source, challenge_id)
        values = sm.plan_mark_credentials_sent(current)
        return await self._commit(source, current, values, "mark_credentials_sent", actor)

    async def unbreach(self, source: DbSource, challenge_id: str, actor: str = "admin") -> Challenge:
        current = await self._get(source, challenge_id)
        values = sm.plan_unbreach(current)
        return await self._commit(source, current, values, "unbreach", actor)

    async def mark_as_passed(
        self, source: DbSource, challenge_id: str, actor: str = "admin"
    ) -> tuple[Challenge, Challenge]:
        """Close the current phase and open the next one on the same source.

        Both writes share one transaction, so either both land or neither does.
        """
        current = await self._get(source, challenge_id)
        plan = sm.plan_mark_as_passed(current)
        store = self._sources.require(source)
        try:
            async with store.transaction() as repo:
                closed = await repo.update_fields(challenge_id, plan.close)
                if closed is None:
                    raise ChallengeNotFound(source.value, challenge_id)
                created = await repo.insert(plan.next_phase)
                closed_row = Challenge.model_validate(closed)
                created_row = Challenge.model_validate(created)
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "mark_as_passed failed on %s for %s: %s", source.value, challenge_id, e,
                extra={"db_source": source.value, "challenge_id": challenge_id},
            )
            raise MutationFailed(source.value, str(e)) from e

        CHALLENGE_TRANSITIONS.labels(transition="mark_as_passed").inc()
        audit_log(
            "challenge_passed", user_id=actor, challenge_id=challenge_id,
            db_source=source.value, next_challenge_id=created_row.id,
            next_phase=created_row.phase, next_account_size=str(created_row.account_size),
        )
        return (
            closed_row.model_copy(update={"db_source": source}),
            created_row.model_copy(update={"db_source": source}),
        )

    # ---- admin mutations owned by the backend API ----

    async def breach(
        self, source: DbSource, challenge_id: str, reason: str, actor: str = "admin"
    ) -> None:
        current = await self._get(source, challenge_id)
        plan = sm.plan_breach(current, reason)
        await self._backend.breach_account(challenge_id, plan["admin_note"], source)
        CHALLENGE_TRANSITIONS.labels(transition="breach").inc()
        audit_log("challenge_breached", user_id=actor, challenge_id=challenge_id,
                  db_source=source.value, reason=plan["admin_note"])

    async def reject(
        self, source: DbSource, challenge_id: str, *, user_note: str = "",
        admin_note: str = "", actor: str = "admin",
    ) -> None:
        current = await self._get(source, challenge_id)
        sm.plan_reject(current, admin_note)
        await self._backend.reject_challenge(challenge_id, user_note, admin_note)
        CHALLENGE_TRANSITIONS.labels(transition="reject").inc()
        audit_log("challenge_rejected", user_id=actor, challenge_id=challenge_id,
                  db_source=source.value)

    async def save_internal_note(
        self, source: DbSource, challenge_id: str, note: str, actor: str = "admin"
    ) -> None:
        await self._get(source, challenge_id)
        note = sm.require_text(note, "Internal note")
        await self._backend.save_internal_note(challenge_id, note)
        audit_log("internal_note_saved", user_id=actor, challenge_id=challenge_id,
                  db_source=source.value)

    async def send_user_note(
        self, source: DbSource, challenge_id: str, note: str, actor: str = "admin"
    ) -> None:
        await self._get(source, challenge_id)
        note = sm.require_text(note, "User note")
        await self._backend.send_user_note(challenge_id, note)
        audit_log("user_note_sent", user_id=actor, challenge_id=challenge_id,
                  db_source=source.value)

    async def assign_affiliate_code(self, user_id: str, actor: str = "admin") -> dict:
        result = await self._backend.assign_affiliate_code(user_id)
        audit_log("affiliate_code_assigned", user_id=actor, target_user_id=user_id)
        return result.get("data") or {}

    # ---- trader mutations ----

    async def sign_contract(self, source: DbSource, challenge_id: str, user_id: str) -> Challenge:
        current = await self._get(source, challenge_id)
        if current.user_id != user_id:
            # Same answer as a missing row; ownership is not disclosed
            raise ChallengeNotFound(source.value, challenge_id)
        values = sm.plan_sign_contract(
            current, release_credentials=self._settings.release_credentials_on_contract
        )
        return await self._commit(source, current, values, "sign_contract", user_id)

    # ---- helpers ----

    async def _get(self, source: DbSource, challenge_id: str) -> Challenge:
        store = self._sources.require(source)
        try:
            challenge = await store.get_challenge(challenge_id)
        except (SQLAlchemyError, OSError) as e:
            raise MutationFailed(source.value, str(e)) from e
        if challenge is None:
            raise ChallengeNotFound(source.value, challenge_id)
        return challenge.model_copy(update={"db_source": source})

    async def _commit(
        self, source: DbSource, current: Challenge, values: dict[str, Any],
        transition: str, actor: str,
    ) -> Challenge:
        store = self._sources.require(source)
        try:
            updated = await store.update_challenge(current.id, values)
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "%s failed on %s for %s: %s", transition, source.value, current.id, e,
                extra={"db_source": source.value, "challenge_id": current.id},
            )
            raise MutationFailed(source.value, str(e)) from e
        if updated is None:
            raise ChallengeNotFound(source.value, current.id)

        CHALLENGE_TRANSITIONS.labels(transition=transition).inc()
        audit_log(
            f"challenge_{transition}", user_id=actor, challenge_id=current.id,
            db_source=source.value, from_status=current.status,
            to_status=values.get("status", current.status),
        )
        return updated.model_copy(update={"db_source": source})
