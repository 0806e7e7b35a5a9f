from propdesk.models.base import Base
from propdesk.models.challenge import (
    SOURCE_ORDER,
    ChallengeStatus,
    DbSource,
    DisplayStatus,
    UserChallenge,
)
from propdesk.models.user import UserProfile

__all__ = [
    "Base",
    "UserProfile",
    "UserChallenge",
    "ChallengeStatus",
    "DisplayStatus",
    "DbSource",
    "SOURCE_ORDER",
]
