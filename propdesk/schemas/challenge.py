from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from propdesk.models.challenge import DbSource, DisplayStatus


class Challenge(BaseModel):
    """A user_challenges row plus the source it was read from."""

    id: str
    user_id: str | None = None
    challenge_type: str | None = None
    challenge_type_id: str | None = None
    account_size: Decimal
    amount_paid: Decimal | None = None
    status: str
    trading_account_id: str | None = None
    trading_account_password: str | None = None
    trading_account_server: str | None = None
    credentials_sent: bool = False
    contract_signed: bool = False
    credentials_visible: bool = False
    phase: int | None = None
    admin_note: str | None = None
    purchase_date: datetime | None = None
    created_at: datetime | None = None
    contract_signed_at: datetime | None = None
    credentials_released_at: datetime | None = None
    db_source: DbSource | None = Field(
        default=None,
        validation_alias=AliasChoices("db_source", "_db_source"),
        serialization_alias="_db_source",
    )

    model_config = {"from_attributes": True, "populate_by_name": True}

    @field_validator("id", "user_id", "challenge_type_id", mode="before")
    @classmethod
    def _coerce_str(cls, v: Any) -> str | None:
        return str(v) if v is not None else None

    @field_validator("credentials_sent", "contract_signed", "credentials_visible", mode="before")
    @classmethod
    def _null_is_false(cls, v: Any) -> bool:
        return bool(v) if v is not None else False

    @property
    def is_provisioned(self) -> bool:
        return bool(self.trading_account_id)

    @property
    def effective_phase(self) -> int:
        return self.phase or 1

    @property
    def placed_at(self) -> datetime | None:
        return self.purchase_date or self.created_at


class ResolvedChallenge(Challenge):
    """Challenge joined with its owner's merged profile (admin read model)."""

    user_email: str = "Unknown"
    user_name: str = "N/A"
    friendly_id: str = "N/A"
    display_status: DisplayStatus | None = None


class TraderAccount(Challenge):
    """Challenge as shown on the owner's dashboard."""

    display_status: DisplayStatus
    breach_reason: str | None = None
    rejection_reason: str | None = None
