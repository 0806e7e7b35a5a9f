from __future__ import annotations

import asyncio
import logging
import time

from fastapi import APIRouter, Request

router = APIRouter(tags=["system"])
logger = logging.getLogger(__name__)

_start_time = time.monotonic()


@router.get("/health")
async def health_check(request: Request):
    """Per-source connectivity. Any reachable source keeps the service usable."""
    registry = request.app.state.sources
    checks: dict[str, dict] = {}
    pending = []
    for name, source in registry.items():
        if source is None:
            checks[name.value] = {"status": "not_configured"}
        else:
            pending.append((name.value, _check_source(source)))

    for (name, _), result in zip(pending, await asyncio.gather(*(c for _, c in pending))):
        checks[name] = result

    statuses = [c["status"] for c in checks.values() if c["status"] != "not_configured"]
    alerts = [f"{name.lower()}_unreachable" for name, c in checks.items() if c["status"] == "error"]
    if not statuses or all(s == "error" for s in statuses):
        overall = "unhealthy"
    elif alerts:
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "status": overall,
        "version": "0.1.0",
        "uptime_seconds": round(time.monotonic() - _start_time, 1),
        "checks": checks,
        "alerts": alerts,
    }


async def _check_source(source) -> dict:
    try:
        start = time.monotonic()
        await source.ping()
        latency_ms = round((time.monotonic() - start) * 1000, 1)
        return {"status": "ok", "latency_ms": latency_ms}
    except Exception as e:
        logger.error("Health check failed for %s: %s", source.name.value, e)
        return {"status": "error", "error": str(e)}
