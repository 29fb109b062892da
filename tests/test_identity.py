"""Unit tests for database/identity.py -- the Supabase Auth adapter."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from supabase import AuthApiError, AuthRetryableError

from access_admin.core.exceptions import Conflict, Unauthenticated, UpstreamError, UpstreamTimeout
from access_admin.database.identity import (
    INDEFINITE_BAN, LIFT_BAN, Account, IdentityProvider, ban_duration
)

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def auth_user(**overrides):
    fields = dict(
        id="u-1",
        email="jane@example.com",
        created_at=NOW,
        email_confirmed_at=NOW,
        last_sign_in_at=None,
        banned_until=None,
        user_metadata={"full_name": "Jane Doe", "username": "jane"},
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def provider():
    supabase, admin = MagicMock(), MagicMock()
    return IdentityProvider(supabase, admin), supabase, admin


class TestBanDuration:
    def test_lift(self):
        assert ban_duration(False, 30) == LIFT_BAN

    def test_days_to_hours(self):
        assert ban_duration(True, 3) == "72h"

    @pytest.mark.parametrize("days", [None, 0])
    def test_indefinite(self, days):
        assert ban_duration(True, days) == INDEFINITE_BAN


class TestAccount:
    def test_from_user(self):
        account = Account.from_user(auth_user())
        assert account.full_name == "Jane Doe"
        assert account.user_metadata["username"] == "jane"

    def test_is_banned(self):
        assert not Account.from_user(auth_user()).is_banned(NOW)
        banned = Account.from_user(auth_user(banned_until=NOW + timedelta(days=1)))
        assert banned.is_banned(NOW)
        assert not banned.is_banned(NOW + timedelta(days=2))


class TestIdentityProvider:
    def test_validate_token(self):
        identity, supabase, _admin = provider()
        supabase.auth.get_user.return_value = SimpleNamespace(user=auth_user())

        account = identity.validate_token("jwt")

        assert account.id == "u-1"
        supabase.auth.get_user.assert_called_once_with(jwt="jwt")

    def test_rejected_token(self):
        identity, supabase, _admin = provider()
        supabase.auth.get_user.side_effect = AuthApiError("invalid JWT", 401, None)

        with pytest.raises(Unauthenticated):
            identity.validate_token("jwt")

    @pytest.mark.parametrize("error", [
        AuthApiError("Internal Server Error", 500, None),
        AuthRetryableError("Bad Gateway", 502),
        httpx.ConnectError("connection refused"),
    ])
    def test_auth_outage_is_not_a_bad_token(self, error):
        identity, supabase, _admin = provider()
        supabase.auth.get_user.side_effect = error

        with pytest.raises(UpstreamError) as exc_info:
            identity.validate_token("jwt")

        assert exc_info.value.status_code == 500

    def test_token_check_timeout(self):
        identity, supabase, _admin = provider()
        supabase.auth.get_user.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(UpstreamTimeout):
            identity.validate_token("jwt")

    def test_duplicate_invite_is_conflict(self):
        identity, _supabase, admin = provider()
        admin.auth.admin.invite_user_by_email.side_effect = RuntimeError(
            "A user with this email address has already been registered"
        )

        with pytest.raises(Conflict):
            identity.invite_account("jane@example.com", {"full_name": "Jane"})

    def test_invite_passes_metadata(self):
        identity, _supabase, admin = provider()
        admin.auth.admin.invite_user_by_email.return_value = SimpleNamespace(user=auth_user())

        identity.invite_account("jane@example.com", {"full_name": "Jane"})

        admin.auth.admin.invite_user_by_email.assert_called_once_with(
            "jane@example.com", {"data": {"full_name": "Jane"}}
        )

    def test_set_ban(self):
        identity, _supabase, admin = provider()
        admin.auth.admin.update_user_by_id.return_value = SimpleNamespace(user=auth_user())

        identity.set_ban("u-1", "48h")

        admin.auth.admin.update_user_by_id.assert_called_once_with("u-1", {"ban_duration": "48h"})

    def test_list_accounts_pages(self):
        identity, _supabase, admin = provider()
        first = [auth_user(id=f"u-{i}") for i in range(1000)]
        admin.auth.admin.list_users.side_effect = [first, [auth_user(id="last")]]

        accounts = identity.list_accounts()

        assert len(accounts) == 1001
        assert admin.auth.admin.list_users.call_count == 2
