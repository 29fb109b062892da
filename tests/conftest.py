"""
tests/conftest.py -- Shared fixtures for access_admin API tests.

The real adapters talk to Supabase over HTTP. Route tests instead inject
in-memory doubles through ``app.dependency_overrides``:

  - FakeStore mirrors RelationalStore, including the admin-floor check the
    guarded Postgres functions perform (so races can be simulated).
  - FakeIdentity mirrors IdentityProvider; deleting an account cascades its
    role rows the way the service_roles FK does.

Environment is set before importing the app so the settings singleton picks
up a rate limit that tests cannot hit.
"""

import itertools
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

os.environ.setdefault("RATE_LIMIT", "100000/minute")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient

from access_admin.core.authorization import Action, ServiceRoleName, minimum_admins_message
from access_admin.core.dependencies import get_identity, get_store
from access_admin.core.exceptions import (
    Conflict, MinimumAdminsViolation, NotFound, Unauthenticated, UpstreamError
)
from access_admin.database.identity import Account, INDEFINITE_BAN, LIFT_BAN
from access_admin.main import app

_clock = itertools.count()
BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _tick() -> datetime:
    return BASE_TIME + timedelta(seconds=next(_clock))


class FakeStore:
    def __init__(self):
        self.services: Dict[str, Dict[str, Any]] = {}
        self.roles: Dict[tuple, Dict[str, Any]] = {}
        self.audit_logs: List[Dict[str, Any]] = []
        self.fail_audit = False
        self.fail_restore = False
        # Rows silently added before the guard runs, to simulate a concurrent request.
        self.admins_removed_concurrently = 0

    # Services

    def add_service(self, name: str) -> Dict[str, Any]:
        service = {"id": str(uuid.uuid4()), "name": name, "created_at": _tick().isoformat()}
        self.services[service["id"]] = service
        return service

    def get_service(self, service_id):
        return self.services.get(service_id)

    def get_service_by_name(self, name):
        return next((s for s in self.services.values() if s["name"] == name), None)

    def list_services(self):
        return sorted(self.services.values(), key=lambda s: s["name"])

    def create_service(self, name):
        if self.get_service_by_name(name):
            raise Conflict(f"A service named '{name}' already exists")
        return self.add_service(name)

    # Service roles

    def _with_service(self, row):
        service = self.services.get(row["service_id"])
        embedded = {"id": service["id"], "name": service["name"]} if service else None
        return {**row, "service": embedded}

    def get_service_role(self, user_id, service_id):
        row = self.roles.get((user_id, service_id))
        return self._with_service(row) if row else None

    def list_service_roles(self, user_ids=None, service_id=None):
        rows = [
            r for r in self.roles.values()
            if (user_ids is None or r["user_id"] in user_ids)
            and (service_id is None or r["service_id"] == service_id)
        ]
        return [self._with_service(r) for r in sorted(rows, key=lambda r: r["created_at"])]

    def user_ids_with_roles(self, role=None, service_id=None):
        return {
            r["user_id"] for r in self.roles.values()
            if (role is None or r["role"] == role.value)
            and (service_id is None or r["service_id"] == service_id)
        }

    def count_admins(self, service_id):
        return sum(1 for r in self.roles.values() if r["service_id"] == service_id and r["role"] == "admin")

    def insert_service_role(self, user_id, service_id, role):
        if (user_id, service_id) in self.roles:
            raise Conflict("User already has a role in this service")
        row = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "service_id": service_id,
            "role": ServiceRoleName(role).value,
            "created_at": _tick().isoformat(),
        }
        self.roles[(user_id, service_id)] = row
        return dict(row)

    def _assert_floor(self, guard_service_id, removed, action):
        live = self.count_admins(guard_service_id) - self.admins_removed_concurrently
        if removed and live - removed < 2:
            raise MinimumAdminsViolation(minimum_admins_message(action))

    def update_service_role_guarded(self, user_id, service_id, role, administration_service_id):
        row = self.roles.get((user_id, service_id))
        if not row:
            return None
        if service_id == administration_service_id and row["role"] == "admin" and role != ServiceRoleName.ADMIN:
            self._assert_floor(administration_service_id, 1, Action.UPDATE_SERVICE_ROLE)
        row["role"] = ServiceRoleName(role).value
        return dict(row)

    def delete_service_role_guarded(self, user_id, service_id, administration_service_id):
        row = self.roles.get((user_id, service_id))
        if not row:
            return None
        if service_id == administration_service_id and row["role"] == "admin":
            self._assert_floor(administration_service_id, 1, Action.REVOKE_SERVICE_ROLE)
        return dict(self.roles.pop((user_id, service_id)))

    def delete_user_roles_guarded(self, user_id, administration_service_id):
        admin_row = self.roles.get((user_id, administration_service_id))
        removed_admins = 1 if admin_row and admin_row["role"] == "admin" else 0
        self._assert_floor(administration_service_id, removed_admins, Action.DELETE_ACCOUNT)
        keys = [k for k in self.roles if k[0] == user_id]
        return [dict(self.roles.pop(k)) for k in keys]

    def restore_service_roles(self, rows):
        if self.fail_restore:
            raise UpstreamError("service_roles unavailable")
        for row in rows:
            self.roles[(row["user_id"], row["service_id"])] = dict(row)

    # Audit logs

    def insert_audit_log(self, entry):
        if self.fail_audit:
            raise UpstreamError("audit_logs unavailable")
        row = {"id": str(uuid.uuid4()), "created_at": _tick().isoformat(), **entry}
        self.audit_logs.append(row)
        return row

    def list_audit_logs(self, offset, limit, search=None, action=None, actor_id=None, target_id=None):
        rows = sorted(self.audit_logs, key=lambda r: r["created_at"], reverse=True)
        if search:
            term = search.lower()
            rows = [
                r for r in rows
                if term in (r.get("actor_email") or "").lower()
                or term in (r.get("target_email") or "").lower()
                or term in r["action"].lower()
            ]
        if action:
            rows = [r for r in rows if r["action"] == action]
        if actor_id:
            rows = [r for r in rows if r["actor_id"] == actor_id]
        if target_id:
            rows = [r for r in rows if r["target_id"] == target_id]
        return rows[offset:offset + limit], len(rows)


class FakeIdentity:
    def __init__(self, store: FakeStore):
        self.store = store
        self.accounts: Dict[str, Account] = {}
        self.tokens: Dict[str, str] = {}
        self.bans: Dict[str, str] = {}
        self.password_resets: List[str] = []
        self.fail_delete = False
        self.delete_error: Exception = UpstreamError("auth admin unavailable")

    def add_account(self, email: str, full_name: Optional[str] = None, confirmed: bool = True) -> Account:
        now = _tick()
        account = Account(
            id=str(uuid.uuid4()),
            email=email,
            full_name=full_name,
            created_at=now,
            email_confirmed_at=now if confirmed else None,
            user_metadata={"full_name": full_name} if full_name else {},
        )
        self.accounts[account.id] = account
        self.tokens[f"token-{account.id}"] = account.id
        return account

    def validate_token(self, token):
        user_id = self.tokens.get(token)
        if not user_id or user_id not in self.accounts:
            raise Unauthenticated()
        return self.accounts[user_id]

    def get_account(self, user_id):
        if user_id not in self.accounts:
            raise NotFound("User not found")
        return self.accounts[user_id]

    def find_account(self, user_id):
        return self.accounts.get(user_id)

    def list_accounts(self):
        return list(self.accounts.values())

    def _new(self, email, metadata, confirmed):
        if any(a.email == email for a in self.accounts.values()):
            raise Conflict("A user with this email address has already been registered")
        return self.add_account(email, metadata.get("full_name"), confirmed=confirmed)

    def invite_account(self, email, metadata):
        return self._new(email, metadata, confirmed=False)

    def create_account(self, email, metadata, password=None):
        return self._new(email, metadata, confirmed=True)

    def update_account(self, user_id, metadata):
        account = self.get_account(user_id)
        updated = account.model_copy(update={
            "full_name": metadata.get("full_name", account.full_name),
            "user_metadata": {**account.user_metadata, **metadata},
        })
        self.accounts[user_id] = updated
        return updated

    def set_ban(self, user_id, duration):
        account = self.get_account(user_id)
        self.bans[user_id] = duration
        if duration == LIFT_BAN:
            banned_until = None
        elif duration == INDEFINITE_BAN:
            banned_until = datetime.now(timezone.utc) + timedelta(days=36500)
        else:
            banned_until = datetime.now(timezone.utc) + timedelta(hours=int(duration.rstrip("h")))
        updated = account.model_copy(update={"banned_until": banned_until})
        self.accounts[user_id] = updated
        return updated

    def delete_account(self, user_id):
        if self.fail_delete:
            raise self.delete_error
        self.get_account(user_id)
        del self.accounts[user_id]
        for key in [k for k in self.store.roles if k[0] == user_id]:
            del self.store.roles[key]

    def send_password_reset(self, email, redirect_to=None):
        self.password_resets.append(email)


class World:
    """One Administration service, one ordinary service and helpers to add people."""

    def __init__(self):
        self.store = FakeStore()
        self.identity = FakeIdentity(self.store)
        self.administration = self.store.add_service("Administration")
        self.rms = self.store.add_service("RMS")

    def add_user(self, email: str, admin_role: Optional[str] = None, full_name: Optional[str] = None) -> Account:
        account = self.identity.add_account(email, full_name)
        if admin_role:
            self.store.insert_service_role(account.id, self.administration["id"], ServiceRoleName(admin_role))
        return account

    def grant(self, account: Account, service: Dict[str, Any], role: str) -> None:
        self.store.insert_service_role(account.id, service["id"], ServiceRoleName(role))

    def admin_count(self) -> int:
        return self.store.count_admins(self.administration["id"])

    def role_of(self, account: Account, service: Dict[str, Any]) -> Optional[str]:
        row = self.store.get_service_role(account.id, service["id"])
        return row["role"] if row else None

    @staticmethod
    def auth(account: Account) -> Dict[str, str]:
        return {"Authorization": f"Bearer token-{account.id}"}


@pytest.fixture
def world() -> World:
    return World()


@pytest.fixture
def client(world: World):
    app.dependency_overrides[get_store] = lambda: world.store
    app.dependency_overrides[get_identity] = lambda: world.identity
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
