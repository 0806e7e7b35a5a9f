"""Prometheus metrics definitions for propdesk."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

SOURCE_FETCH_DURATION = Histogram(
    "source_fetch_duration_seconds",
    "Latency of one read against one challenge source",
    ["source", "kind"],  # kind=profiles/challenges/auth_users
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

SOURCE_FETCH_FAILURES = Counter(
    "source_fetch_failures_total",
    "Reads that degraded to an empty result",
    ["source", "kind"],
)

UNRESOLVED_PROFILES = Counter(
    "unresolved_profiles_total",
    "Challenges whose user_id had no merged profile",
    ["source"],
)

CHALLENGE_TRANSITIONS = Counter(
    "challenge_transitions_total",
    "Lifecycle transitions committed",
    ["transition"],
)

BACKEND_REQUESTS = Counter(
    "backend_requests_total",
    "Calls to the backend REST API",
    ["endpoint", "status"],  # status=success/failed
)
