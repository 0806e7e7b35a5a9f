import contextvars
import json
import logging
from datetime import UTC, datetime

current_user_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "user_id", default="system"
)
current_request_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default="-"
)
current_db_source: contextvars.ContextVar[str] = contextvars.ContextVar(
    "db_source", default="-"
)

# Optional per-record fields, passed through ``extra=``
_CHALLENGE_FIELDS = ("challenge_id", "kind", "rows", "duration_ms")


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, keyed for filtering by actor, request and source.

    ``db_source`` comes from ``extra=`` when the call site names one,
    otherwise from the source read currently in flight.
    """

    def format(self, record):
        log_data = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "user_id": current_user_id.get(),
            "request_id": current_request_id.get(),
            "db_source": getattr(record, "db_source", None) or current_db_source.get(),
            "msg": record.getMessage(),
        }
        for field in _CHALLENGE_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Audit lines are already JSON; print them verbatim
    audit = logging.getLogger("audit")
    audit.propagate = False
    audit.handlers.clear()
    audit_handler = logging.StreamHandler()
    audit_handler.setFormatter(logging.Formatter("%(message)s"))
    audit.addHandler(audit_handler)
    audit.setLevel(logging.INFO)


def audit_log(event: str, user_id: str, challenge_id: str | None = None, **kwargs) -> None:
    """Record an admin or trader action against a challenge."""
    data = {
        "event": event,
        "user_id": user_id,
        "request_id": current_request_id.get(),
        "ts": datetime.now(UTC).isoformat(),
    }
    if challenge_id:
        data["challenge_id"] = challenge_id
    data.update(kwargs)
    logging.getLogger("audit").info(json.dumps(data, ensure_ascii=False, default=str))
