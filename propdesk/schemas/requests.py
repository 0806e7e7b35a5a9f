from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class AssignCredentials(BaseModel):
    login: str = ""
    password: str | None = None
    server: str | None = None


class AssignPhaseCredentials(AssignCredentials):
    account_size: Decimal
    phase: int = Field(default=1)


class EditAccount(AssignCredentials):
    account_size: Decimal


class BreachRequest(BaseModel):
    reason: str = ""


class RejectRequest(BaseModel):
    user_note: str = ""
    admin_note: str = ""


class NoteRequest(BaseModel):
    note: str = ""
