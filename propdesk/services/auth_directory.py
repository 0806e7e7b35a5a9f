"""Client for the hosted auth provider's admin user listing.

Used only as a fallback for users that have no user_profile row yet
(e.g. the signup trigger has not run). Never raises.
"""
from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError

from propdesk.config import GlobalConfig
from propdesk.schemas.profile import AuthUser
from propdesk.utils.metrics import SOURCE_FETCH_DURATION, SOURCE_FETCH_FAILURES

logger = logging.getLogger(__name__)


class AuthDirectory:
    USERS_PATH = "/auth/v1/admin/users"
    MAX_PAGES = 100

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        page_size: int = 1000,
        timeout: float = 10.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._page_size = page_size
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: GlobalConfig) -> AuthDirectory:
        return cls(
            settings.auth_url,
            settings.auth_service_key,
            page_size=settings.auth_page_size,
            timeout=settings.source_fetch_timeout_sec,
        )

    @property
    def is_enabled(self) -> bool:
        return bool(self._base_url and self._service_key)

    async def list_users(self) -> list[AuthUser]:
        """All auth users, or [] when the provider is unconfigured or failing."""
        if not self.is_enabled:
            logger.info("Auth directory not configured, skipping auth fallback")
            return []

        start = time.monotonic()
        try:
            users = await self._list_all()
        except Exception as e:
            logger.warning("Could not fetch auth users: %s", e)
            SOURCE_FETCH_FAILURES.labels(source="AUTH", kind="auth_users").inc()
            return []
        finally:
            SOURCE_FETCH_DURATION.labels(source="AUTH", kind="auth_users").observe(
                time.monotonic() - start
            )
        logger.info("Fetched %d users from auth directory", len(users))
        return users

    async def _list_all(self) -> list[AuthUser]:
        headers = {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
        }
        users: list[AuthUser] = []
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            for page in range(1, self.MAX_PAGES + 1):
                response = await client.get(
                    f"{self._base_url}{self.USERS_PATH}",
                    params={"page": page, "per_page": self._page_size},
                    headers=headers,
                )
                response.raise_for_status()
                batch = self._page_users(response.json())
                users.extend(self._parse_users(batch))
                if len(batch) < self._page_size:
                    break
        return users

    @staticmethod
    def _page_users(payload: Any) -> list:
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected auth users payload: {type(payload).__name__}")
        batch = payload.get("users") or []
        if not isinstance(batch, list):
            raise ValueError(f"Unexpected auth users field: {type(batch).__name__}")
        return batch

    @staticmethod
    def _parse_users(batch: list) -> list[AuthUser]:
        parsed: list[AuthUser] = []
        for entry in batch:
            try:
                parsed.append(AuthUser.model_validate(entry))
            except ValidationError as e:
                logger.warning("Skipping malformed auth user entry: %d errors", e.error_count())
        return parsed
