# Supabase Auth (auth.users) is the identity provider.
# Accounts are read and written only through the auth admin API.

import logging
import httpx
from datetime import datetime
from pydantic import BaseModel
from supabase import AuthApiError, AuthError, Client
from access_admin.core.exceptions import Conflict, NotFound, Unauthenticated, UpstreamError, UpstreamTimeout
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000
INDEFINITE_BAN = "876000h"  # ~100 years; GoTrue has no "forever"
LIFT_BAN = "none"

_DUPLICATE_MARKERS = ("already been registered", "already registered", "already exists")


class Account(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    created_at: Optional[datetime] = None
    email_confirmed_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None
    banned_until: Optional[datetime] = None
    user_metadata: Dict[str, Any] = {}

    @classmethod
    def from_user(cls, user) -> "Account":
        metadata = user.user_metadata or {}
        return cls(
            id=user.id,
            email=user.email,
            full_name=metadata.get("full_name"),
            created_at=user.created_at,
            email_confirmed_at=user.email_confirmed_at,
            last_sign_in_at=user.last_sign_in_at,
            banned_until=getattr(user, "banned_until", None),
            user_metadata=metadata,
        )

    def is_banned(self, now: Optional[datetime] = None) -> bool:
        if self.banned_until is None:
            return False
        now = now or datetime.now(self.banned_until.tzinfo)
        return self.banned_until > now


def ban_duration(banned: bool, duration_in_days: Optional[int] = None) -> str:
    """GoTrue ban_duration string: hours for a timed ban, a century for indefinite, 'none' to lift."""
    if not banned:
        return LIFT_BAN
    if duration_in_days and duration_in_days > 0:
        return f"{duration_in_days * 24}h"
    return INDEFINITE_BAN


class IdentityProvider:
    def __init__(self, supabase: Client, admin: Client):
        self.supabase = supabase
        self.admin = admin

    def _failure(self, what: str, e: Exception) -> Exception:
        if isinstance(e, httpx.TimeoutException):
            logger.error(f"Identity provider timed out {what}: {e}")
            return UpstreamTimeout(f"Identity provider timed out {what}")
        logger.error(f"Identity provider error {what}: {e}")
        return UpstreamError(f"Identity provider error {what}: {e}")

    def validate_token(self, token: str) -> Account:
        """Resolve a bearer token to its account."""
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except AuthError as e:
            # 4xx from GoTrue means the token is bad; anything else is GoTrue being unavailable
            status = getattr(e, "status", None)
            if status is not None and 400 <= status < 500:
                logger.info(f"Token rejected: {e}")
                raise Unauthenticated()
            raise self._failure("validating token", e)
        except httpx.HTTPError as e:
            raise self._failure("validating token", e)
        if not user_response or not user_response.user:
            raise Unauthenticated()
        return Account.from_user(user_response.user)

    def get_account(self, user_id: str) -> Account:
        try:
            response = self.admin.auth.admin.get_user_by_id(user_id)
        except AuthApiError as e:
            if e.status == 404 or "not found" in str(e).lower():
                raise NotFound("User not found")
            raise self._failure("fetching account", e)
        except Exception as e:
            raise self._failure("fetching account", e)
        if not response or not response.user:
            raise NotFound("User not found")
        return Account.from_user(response.user)

    def find_account(self, user_id: str) -> Optional[Account]:
        try:
            return self.get_account(user_id)
        except NotFound:
            return None

    def list_accounts(self) -> List[Account]:
        accounts: List[Account] = []
        page = 1
        while True:
            try:
                users = self.admin.auth.admin.list_users(page=page, per_page=LIST_PAGE_SIZE)
            except Exception as e:
                raise self._failure("listing accounts", e)
            accounts.extend(Account.from_user(u) for u in users)
            if len(users) < LIST_PAGE_SIZE:
                return accounts
            page += 1

    def _raise_for_write(self, what: str, e: Exception):
        message = str(e).lower()
        if any(marker in message for marker in _DUPLICATE_MARKERS):
            raise Conflict("A user with this email address has already been registered")
        if isinstance(e, AuthApiError) and (e.status == 404 or "not found" in message):
            raise NotFound("User not found")
        raise self._failure(what, e)

    def invite_account(self, email: str, metadata: Dict[str, Any]) -> Account:
        try:
            response = self.admin.auth.admin.invite_user_by_email(email, {"data": metadata})
        except Exception as e:
            self._raise_for_write("inviting account", e)
        return Account.from_user(response.user)

    def create_account(self, email: str, metadata: Dict[str, Any], password: Optional[str] = None) -> Account:
        attributes: Dict[str, Any] = {"email": email, "user_metadata": metadata, "email_confirm": True}
        if password:
            attributes["password"] = password
        try:
            response = self.admin.auth.admin.create_user(attributes)
        except Exception as e:
            self._raise_for_write("creating account", e)
        return Account.from_user(response.user)

    def update_account(self, user_id: str, metadata: Dict[str, Any]) -> Account:
        try:
            response = self.admin.auth.admin.update_user_by_id(user_id, {"user_metadata": metadata})
        except Exception as e:
            self._raise_for_write("updating account", e)
        return Account.from_user(response.user)

    def set_ban(self, user_id: str, duration: str) -> Account:
        try:
            response = self.admin.auth.admin.update_user_by_id(user_id, {"ban_duration": duration})
        except Exception as e:
            self._raise_for_write("updating ban state", e)
        return Account.from_user(response.user)

    def delete_account(self, user_id: str) -> None:
        try:
            self.admin.auth.admin.delete_user(user_id)
        except Exception as e:
            self._raise_for_write("deleting account", e)

    def send_password_reset(self, email: str, redirect_to: Optional[str] = None) -> None:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        try:
            self.admin.auth.reset_password_for_email(email, options)
        except Exception as e:
            raise self._failure("sending password reset", e)
