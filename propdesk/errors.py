"""Error taxonomy for challenge reads and writes.

Read paths degrade instead of raising (a failing source contributes zero
rows). Everything below is raised from write paths only.
"""
from __future__ import annotations


class PropDeskError(Exception):
    """Base class for all service errors."""


class TransitionError(PropDeskError):
    """A lifecycle transition was rejected before any write."""


class ChallengeNotFound(PropDeskError):
    def __init__(self, source: str, challenge_id: str):
        super().__init__(f"Challenge {challenge_id} not found in {source}")
        self.source = source
        self.challenge_id = challenge_id


class SourceUnavailable(PropDeskError):
    def __init__(self, source: str):
        super().__init__(f"Source {source} is not configured")
        self.source = source


class MutationFailed(PropDeskError):
    """A write against a source failed at the storage layer."""

    def __init__(self, source: str, message: str):
        super().__init__(f"Write to {source} failed: {message}")
        self.source = source


class BackendError(PropDeskError):
    """The backend REST API returned an error or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
