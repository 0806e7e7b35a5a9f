from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from propdesk.schemas.challenge import ResolvedChallenge, TraderAccount
from propdesk.schemas.profile import UserDirectoryEntry


class Reconciliation(BaseModel):
    """Admin partition of all tagged challenges."""

    pending: list[ResolvedChallenge] = Field(default_factory=list)
    rejected: list[ResolvedChallenge] = Field(default_factory=list)
    accounts: list[ResolvedChallenge] = Field(default_factory=list)

    def accounts_in_phase(self, phase: int) -> list[ResolvedChallenge]:
        return [a for a in self.accounts if a.effective_phase == phase]


class AdminStats(BaseModel):
    total: int = 0
    with_credentials: int = 0
    without_credentials: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_source: dict[str, int] = Field(default_factory=dict)
    total_account_size: Decimal = Decimal("0")
    total_amount_paid: Decimal = Decimal("0")


class AdminView(BaseModel):
    pending: list[ResolvedChallenge]
    rejected: list[ResolvedChallenge]
    phase1: list[ResolvedChallenge]
    phase2: list[ResolvedChallenge]
    live: list[ResolvedChallenge]
    users: list[UserDirectoryEntry]
    stats: AdminStats


class DashboardStats(BaseModel):
    accounts: int = 0
    pending: int = 0
    total_account_size: Decimal = Decimal("0")
    total_balance: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")


class TraderView(BaseModel):
    user_id: str
    active: list[TraderAccount] = Field(default_factory=list)
    breached: list[TraderAccount] = Field(default_factory=list)
    awaiting: list[TraderAccount] = Field(default_factory=list)
    rejected: list[TraderAccount] = Field(default_factory=list)
    passed: list[TraderAccount] = Field(default_factory=list)
    unsigned_contract_id: str | None = None
    stats: DashboardStats = Field(default_factory=DashboardStats)
