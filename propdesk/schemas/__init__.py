from propdesk.schemas.challenge import Challenge, ResolvedChallenge, TraderAccount
from propdesk.schemas.profile import AuthUser, Profile, UserDirectoryEntry
from propdesk.schemas.requests import (
    AssignCredentials,
    AssignPhaseCredentials,
    BreachRequest,
    EditAccount,
    NoteRequest,
    RejectRequest,
)
from propdesk.schemas.views import AdminStats, AdminView, DashboardStats, Reconciliation, TraderView
