"""Unit tests for profile merging across sources and the auth fallback."""
from __future__ import annotations

import pytest

from propdesk.schemas.profile import AuthUser, Profile
from propdesk.services.profile_merger import (
    build_user_directory,
    last_write_wins_whole_row,
    merge_profiles,
    profile_from_auth_user,
)


def _profile(user_id, email=None, first=None, last=None, friendly=None) -> Profile:
    return Profile(
        user_id=user_id, email=email, first_name=first, last_name=last, friendly_id=friendly
    )


@pytest.mark.unit
class TestMergeProfiles:
    def test_later_source_replaces_whole_row(self):
        primary = [_profile("u1", "a@x.com", "Ann", "Lee", "F-1")]
        bolt = [_profile("u1", "b@x.com")]
        merged = merge_profiles([primary, bolt, []])
        assert merged["u1"].email == "b@x.com"
        # Whole-row replace: the sparse later row blanks the name
        assert merged["u1"].first_name is None
        assert merged["u1"].friendly_id is None

    def test_old_wins_over_primary_and_bolt(self):
        merged = merge_profiles(
            [[_profile("u1", "p@x.com")], [_profile("u1", "b@x.com")], [_profile("u1", "o@x.com")]]
        )
        assert merged["u1"].email == "o@x.com"

    def test_idempotent(self):
        sources = [[_profile("u1", "a@x.com")], [_profile("u2", "b@x.com")], []]
        auth = [AuthUser(id="u3", email="c@x.com")]
        assert merge_profiles(sources, auth) == merge_profiles(sources, auth)

    def test_rows_without_user_id_are_dropped(self):
        merged = merge_profiles([[_profile(None, "ghost@x.com"), _profile("u1")]])
        assert list(merged) == ["u1"]

    def test_custom_policy(self):
        def keep_first(existing, incoming):
            return existing or incoming

        merged = merge_profiles(
            [[_profile("u1", "first@x.com")], [_profile("u1", "second@x.com")]], policy=keep_first
        )
        assert merged["u1"].email == "first@x.com"

    def test_default_policy_is_last_write_wins(self):
        a, b = _profile("u1", "a"), _profile("u1", "b")
        assert last_write_wins_whole_row(a, b) is b


@pytest.mark.unit
class TestAuthFallback:
    def test_auth_only_user_gets_profile(self):
        auth = [AuthUser(id="u9", email="z@x.com", user_metadata={"name": "Zoe Anne Quinn"})]
        merged = merge_profiles([[], [], []], auth)
        p = merged["u9"]
        assert p.origin == "auth"
        assert p.email == "z@x.com"
        assert p.first_name == "Zoe"
        assert p.last_name == "Anne Quinn"
        assert p.full_name == "Zoe Anne Quinn"

    def test_table_profile_is_never_overridden_by_auth(self):
        merged = merge_profiles(
            [[_profile("u1", "table@x.com", "Tab")]],
            [AuthUser(id="u1", email="auth@x.com", user_metadata={"name": "Other"})],
        )
        assert merged["u1"].email == "table@x.com"
        assert merged["u1"].origin == "profile"

    def test_explicit_name_fields_win_over_name(self):
        user = AuthUser(
            id="u1",
            email="e@x.com",
            user_metadata={"first_name": "Jo", "last_name": "Park", "friendly_id": "F-77"},
        )
        p = profile_from_auth_user(user)
        assert (p.first_name, p.last_name, p.full_name, p.friendly_id) == (
            "Jo", "Park", "Jo Park", "F-77",
        )

    def test_full_name_falls_back_to_email(self):
        p = profile_from_auth_user(AuthUser(id="u1", email="only@x.com", user_metadata=None))
        assert p.full_name == "only@x.com"
        assert p.first_name == ""


@pytest.mark.unit
def test_user_directory_sorted_by_email_with_origin():
    merged = merge_profiles(
        [[_profile("u1", "b@x.com", "Bo", "Ng")]],
        [AuthUser(id="u2", email="A@x.com", user_metadata={"name": "Al"})],
    )
    directory = build_user_directory(merged)
    assert [e.user_id for e in directory] == ["u2", "u1"]
    assert directory[0].source == "auth"
    assert directory[1].source == "profile"
    assert directory[1].full_name == "Bo Ng"
