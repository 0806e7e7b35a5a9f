from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class Profile(BaseModel):
    """One row of user_profile, or a profile synthesized from the auth provider."""

    user_id: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    friendly_id: str | None = None
    full_name: str | None = None
    origin: Literal["profile", "auth"] = "profile"

    model_config = {"from_attributes": True}

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str | None:
        return str(v) if v is not None else None

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class AuthUser(BaseModel):
    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("user_metadata", mode="before")
    @classmethod
    def _none_metadata(cls, v: Any) -> dict:
        return v or {}


class UserDirectoryEntry(BaseModel):
    user_id: str
    email: str | None = None
    full_name: str = ""
    friendly_id: str | None = None
    source: str  # "profile" | "auth"
