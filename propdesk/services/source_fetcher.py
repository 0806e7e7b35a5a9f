"""Best-effort reads across every configured challenge source.

Each source is read concurrently with its own timeout. A source that is
unconfigured, slow, or failing contributes an empty list; nothing raises to
the caller. Results are always keyed in precedence order (PRIMARY, BOLT, OLD)
no matter which fetch finished first.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol, TypeVar

from propdesk.models.challenge import DbSource
from propdesk.schemas.challenge import Challenge
from propdesk.schemas.profile import Profile
from propdesk.utils.logging import current_db_source
from propdesk.utils.metrics import SOURCE_FETCH_DURATION, SOURCE_FETCH_FAILURES

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT")


class ChallengeSource(Protocol):
    name: DbSource

    async def fetch_profiles(self) -> list[Profile]: ...

    async def fetch_challenges(self, user_id: str | None = None) -> list[Challenge]: ...

    async def get_challenge(self, challenge_id: str) -> Challenge | None: ...

    def transaction(self) -> AbstractAsyncContextManager[Any]: ...

    async def update_challenge(self, challenge_id: str, values: dict[str, Any]) -> Challenge | None: ...

    async def insert_challenge(self, values: dict[str, Any]) -> Challenge: ...


async def fetch_best_effort(
    name: DbSource,
    kind: str,
    call: Callable[[], Awaitable[list[RowT]]],
    timeout: float,
) -> list[RowT]:
    """Run one source read; any failure becomes an empty list."""
    token = current_db_source.set(name.value)
    start = time.monotonic()
    try:
        rows = await asyncio.wait_for(call(), timeout)
    except TimeoutError:
        logger.warning("Timed out fetching %s from %s after %.1fs", kind, name.value, timeout)
        SOURCE_FETCH_FAILURES.labels(source=name.value, kind=kind).inc()
        return []
    except Exception as e:
        logger.error("Error fetching %s from %s: %s", kind, name.value, e)
        SOURCE_FETCH_FAILURES.labels(source=name.value, kind=kind).inc()
        return []
    finally:
        SOURCE_FETCH_DURATION.labels(source=name.value, kind=kind).observe(
            time.monotonic() - start
        )
        current_db_source.reset(token)
    logger.info(
        "Fetched %d %s from %s", len(rows), kind, name.value,
        extra={"db_source": name.value, "kind": kind, "rows": len(rows),
               "duration_ms": round((time.monotonic() - start) * 1000, 1)},
    )
    return list(rows)


async def _fan_out(
    registry,
    kind: str,
    make_call: Callable[[ChallengeSource], Callable[[], Awaitable[list[RowT]]]],
    timeout: float,
) -> dict[DbSource, list[RowT]]:
    names: list[DbSource] = []
    pending: list[Awaitable[list[RowT]]] = []
    results: dict[DbSource, list[RowT]] = {}
    for name, source in registry.items():
        results[name] = []
        if source is None:
            logger.info("Source %s not available, skipping %s", name.value, kind)
            continue
        names.append(name)
        pending.append(fetch_best_effort(name, kind, make_call(source), timeout))

    for name, rows in zip(names, await asyncio.gather(*pending)):
        results[name] = rows
    return results


async def fetch_all_profiles(registry, timeout: float) -> dict[DbSource, list[Profile]]:
    return await _fan_out(registry, "profiles", lambda s: s.fetch_profiles, timeout)


async def fetch_all_challenges(
    registry, timeout: float, user_id: str | None = None
) -> dict[DbSource, list[Challenge]]:
    return await _fan_out(
        registry,
        "challenges",
        lambda s: (lambda: s.fetch_challenges(user_id)),
        timeout,
    )
