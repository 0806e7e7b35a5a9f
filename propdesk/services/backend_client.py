"""Client for the backend REST API that owns notifications and outbound email.

Every endpoint answers with ``{"success": bool, "data"?, "error"?, "message"?}``.
A non-2xx status or ``success: false`` is raised as BackendError. Calls are
never retried.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from propdesk.config import GlobalConfig
from propdesk.errors import BackendError
from propdesk.models.challenge import DbSource
from propdesk.utils.metrics import BACKEND_REQUESTS

logger = logging.getLogger(__name__)


class BackendClient:
    def __init__(self, base_url: str, timeout: float = 10.0):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: GlobalConfig) -> BackendClient:
        return cls(settings.backend_api_url, timeout=settings.backend_timeout_sec)

    async def reject_challenge(self, challenge_id: str, user_note: str, admin_note: str) -> dict:
        return await self._post(
            "challenges/reject",
            {"challengeId": challenge_id, "userNote": user_note, "adminNote": admin_note},
        )

    async def send_user_note(self, challenge_id: str, user_note: str) -> dict:
        return await self._post(
            "challenges/send-note", {"challengeId": challenge_id, "userNote": user_note}
        )

    async def save_internal_note(self, challenge_id: str, admin_note: str) -> dict:
        return await self._post(
            f"challenges/internal-note/{challenge_id}", {"adminNote": admin_note}
        )

    async def breach_account(self, challenge_id: str, reason: str, db_source: DbSource) -> dict:
        return await self._post(
            f"accounts/{challenge_id}/breach",
            {"reason": reason, "db_source": db_source.value},
        )

    async def assign_affiliate_code(self, user_id: str) -> dict:
        return await self._post("affiliates/create", {"user_id": user_id})

    async def _post(self, path: str, body: dict[str, Any]) -> dict:
        endpoint = path.split("/", 1)[0]
        url = f"{self._base_url}/{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=body)
        except httpx.HTTPError as e:
            BACKEND_REQUESTS.labels(endpoint=endpoint, status="failed").inc()
            logger.error("Backend request to %s failed: %s", path, e)
            raise BackendError(f"Backend unreachable: {e}") from e

        payload = self._decode(response)
        if response.status_code >= 400 or not payload.get("success"):
            BACKEND_REQUESTS.labels(endpoint=endpoint, status="failed").inc()
            message = payload.get("error") or f"Backend returned {response.status_code}"
            logger.warning("Backend %s rejected request: %s", path, message)
            raise BackendError(message, status_code=response.status_code)

        BACKEND_REQUESTS.labels(endpoint=endpoint, status="success").inc()
        return payload

    @staticmethod
    def _decode(response: httpx.Response) -> dict:
        try:
            payload = response.json()
        except ValueError:
            return {"success": False, "error": response.text[:200]}
        return payload if isinstance(payload, dict) else {"success": False}
