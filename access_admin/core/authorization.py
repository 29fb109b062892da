"""
Authorization rules for privileged mutations.

``authorize`` is pure: callers fetch the target's current Administration role
and, when a rule needs it, the live Administration admin count, then ask for a
decision. Rules are evaluated in a fixed precedence order and the first match
decides. Deny reasons are stable, user-facing strings.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

MINIMUM_ADMINISTRATION_ADMINS = 2


class ServiceRoleName(str, Enum):
    ADMIN = "admin"
    USER = "user"


class ResolvedRole(str, Enum):
    """Actor's role in the Administration service, as resolved from their role row."""
    ADMIN = "admin"
    USER = "user"
    NONE = "none"


class Action(str, Enum):
    GRANT_SERVICE_ROLE = "grant-service-role"
    REVOKE_SERVICE_ROLE = "revoke-service-role"
    UPDATE_SERVICE_ROLE = "update-service-role"
    CREATE_ACCOUNT = "create-account"
    UPDATE_ACCOUNT = "update-account"
    DELETE_ACCOUNT = "delete-account"
    RESET_PASSWORD = "reset-password"
    BAN_ACCOUNT = "ban-account"
    VIEW_LOGS = "view-logs"
    CREATE_SERVICE = "create-service"


ROLE_MANAGEMENT_ACTIONS = {
    Action.GRANT_SERVICE_ROLE,
    Action.REVOKE_SERVICE_ROLE,
    Action.UPDATE_SERVICE_ROLE,
}

ADMIN_REQUIRED_MESSAGES = {
    Action.UPDATE_ACCOUNT: "Forbidden: You do not have permission to edit users.",
    Action.DELETE_ACCOUNT: "Forbidden: You do not have permission to delete users.",
    Action.VIEW_LOGS: "Forbidden: You do not have permission to view audit logs.",
    Action.CREATE_SERVICE: "Forbidden: You do not have permission to create services.",
}

SELF_BAN = "You cannot ban your own account."
SELF_DELETE = "You cannot delete your own account."
SELF_DEMOTE = "Forbidden: Admins cannot demote their own account."
SELF_PROMOTE = "Forbidden: You cannot make yourself an admin."
MANAGE_ADMINISTRATION = "Forbidden: You do not have permission to manage roles in the Administration service."
BAN_ADMINISTRATION_MEMBER = "Forbidden: You do not have permission to ban members of the Administration service."
BAN_ADMIN = "Admins cannot ban other admins."

_MINIMUM_ADMINS_VERBS = {
    Action.UPDATE_SERVICE_ROLE: "demote",
    Action.REVOKE_SERVICE_ROLE: "remove",
    Action.DELETE_ACCOUNT: "delete",
}


def minimum_admins_message(action: Action) -> str:
    verb = _MINIMUM_ADMINS_VERBS.get(action, "remove")
    return (
        f"Cannot {verb} admin. A minimum of {MINIMUM_ADMINISTRATION_ADMINS} admins "
        "for the Administration service is required."
    )


@dataclass(frozen=True)
class ActorContext:
    id: str
    email: str
    role: ServiceRoleName

    @property
    def is_admin(self) -> bool:
        return self.role == ServiceRoleName.ADMIN


@dataclass(frozen=True)
class TargetDescriptor:
    """What a mutation acts on.

    ``administration_role`` is the target's current role in the Administration
    service (None when not a member). ``concerns_administration`` is set when a
    service-role action is aimed at the Administration service itself.
    ``requested_role`` is the role being granted or set.
    """
    user_id: Optional[str] = None
    concerns_administration: bool = False
    administration_role: Optional[ServiceRoleName] = None
    requested_role: Optional[ServiceRoleName] = None


@dataclass(frozen=True)
class InvariantState:
    administration_admin_count: Optional[int] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(allowed=True)


def deny(reason: str) -> Decision:
    return Decision(allowed=False, reason=reason)


def _canonical_id(account_id: str) -> str:
    try:
        return str(UUID(account_id.strip()))
    except ValueError:
        return account_id.strip().lower()


def same_account(a: str, b: str) -> bool:
    """Account ids are UUIDs and may arrive in any of their spellings."""
    return _canonical_id(a) == _canonical_id(b)


def removes_administration_admin(action: Action, target: TargetDescriptor) -> bool:
    """True when the action would take away an existing Administration admin row.

    Callers use this to decide whether the live admin count must be fetched.
    """
    if target.administration_role != ServiceRoleName.ADMIN:
        return False
    if action == Action.DELETE_ACCOUNT:
        return True
    if not target.concerns_administration:
        return False
    if action == Action.REVOKE_SERVICE_ROLE:
        return True
    return action == Action.UPDATE_SERVICE_ROLE and target.requested_role == ServiceRoleName.USER


def authorize(
    actor: ActorContext,
    action: Action,
    target: Optional[TargetDescriptor] = None,
    invariant_state: Optional[InvariantState] = None,
) -> Decision:
    target = target or TargetDescriptor()
    invariant_state = invariant_state or InvariantState()
    is_self = target.user_id is not None and same_account(target.user_id, actor.id)

    # 1. self ban / self delete
    if is_self and action == Action.BAN_ACCOUNT:
        return deny(SELF_BAN)
    if is_self and action == Action.DELETE_ACCOUNT:
        return deny(SELF_DELETE)

    manages_administration = action in ROLE_MANAGEMENT_ACTIONS and target.concerns_administration

    # 2. admin demoting themselves
    if (
        manages_administration
        and actor.is_admin
        and is_self
        and action == Action.UPDATE_SERVICE_ROLE
        and target.requested_role == ServiceRoleName.USER
    ):
        return deny(SELF_DEMOTE)

    # 3. user promoting themselves
    if (
        manages_administration
        and not actor.is_admin
        and is_self
        and action in (Action.GRANT_SERVICE_ROLE, Action.UPDATE_SERVICE_ROLE)
        and target.requested_role == ServiceRoleName.ADMIN
    ):
        return deny(SELF_PROMOTE)

    # 4. users never manage Administration roles
    if manages_administration and not actor.is_admin:
        return deny(MANAGE_ADMINISTRATION)

    if action == Action.BAN_ACCOUNT:
        # 5.
        if not actor.is_admin and target.administration_role is not None:
            return deny(BAN_ADMINISTRATION_MEMBER)
        # 6.
        if actor.is_admin and target.administration_role == ServiceRoleName.ADMIN:
            return deny(BAN_ADMIN)

    # 7. global admin floor
    if removes_administration_admin(action, target):
        count = invariant_state.administration_admin_count
        if count is None:
            raise ValueError(f"{action.value} on an Administration admin requires the live admin count")
        if count <= MINIMUM_ADMINISTRATION_ADMINS:
            return deny(minimum_admins_message(action))

    # 8. admin-only actions
    if action in ADMIN_REQUIRED_MESSAGES and not actor.is_admin:
        return deny(ADMIN_REQUIRED_MESSAGES[action])

    return ALLOW
