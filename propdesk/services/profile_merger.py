"""Merge user profiles from every source plus the auth provider listing.

Merge order is the source order: PRIMARY, then BOLT, then OLD. The default
policy replaces the whole row on a repeated user_id, so a sparse row from a
later source can blank fields an earlier source had. Policies are plain
callables so a field-level merge can replace it without touching callers.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

from propdesk.schemas.profile import AuthUser, Profile, UserDirectoryEntry

logger = logging.getLogger(__name__)

MergePolicy = Callable[[Profile | None, Profile], Profile]


def last_write_wins_whole_row(existing: Profile | None, incoming: Profile) -> Profile:
    return incoming


def profile_from_auth_user(user: AuthUser) -> Profile:
    """Minimal profile built from auth metadata for users with no profile row."""
    meta = user.user_metadata
    name = (meta.get("name") or "").strip()
    name_parts = name.split(" ") if name else []
    first_name = meta.get("first_name") or (name_parts[0] if name_parts else "")
    last_name = meta.get("last_name") or " ".join(name_parts[1:])
    full_name = (
        name
        or f"{meta.get('first_name') or ''} {meta.get('last_name') or ''}".strip()
        or user.email
    )
    return Profile(
        user_id=user.id,
        email=user.email,
        first_name=first_name,
        last_name=last_name,
        friendly_id=meta.get("friendly_id") or None,
        full_name=full_name,
        origin="auth",
    )


def merge_profiles(
    sources: Sequence[Iterable[Profile]],
    auth_users: Iterable[AuthUser] = (),
    policy: MergePolicy = last_write_wins_whole_row,
) -> dict[str, Profile]:
    """One profile per user_id: source rows folded by ``policy``, then auth fallbacks."""
    merged: dict[str, Profile] = {}
    for rows in sources:
        for profile in rows:
            if not profile.user_id:
                continue
            merged[profile.user_id] = policy(merged.get(profile.user_id), profile)
    from_tables = len(merged)

    fallbacks = 0
    for user in auth_users:
        if user.id in merged:
            continue
        logger.debug("Using auth fallback for user_id %s", user.id)
        merged[user.id] = profile_from_auth_user(user)
        fallbacks += 1

    logger.info(
        "Merged %d profiles (%d from profile tables, %d auth fallbacks)",
        len(merged), from_tables, fallbacks,
    )
    return merged


def build_user_directory(profiles: dict[str, Profile]) -> list[UserDirectoryEntry]:
    """Admin user listing of every merged profile, sorted by email."""
    entries = [
        UserDirectoryEntry(
            user_id=user_id,
            email=p.email,
            full_name=p.display_name or p.full_name or "",
            friendly_id=p.friendly_id,
            source=p.origin,
        )
        for user_id, p in profiles.items()
    ]
    return sorted(entries, key=lambda e: (e.email or "").lower())
