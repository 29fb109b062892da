"""
Audit trail writer.

Every privileged mutation appends one entry after the mutation has succeeded.
Writing is best-effort: failures are logged and swallowed so the already
committed mutation is still reported as successful.
"""

import logging
from enum import Enum
from typing import List, Optional, Protocol, Union

from pydantic import BaseModel

from access_admin.core.authorization import ServiceRoleName

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    USER_CREATE = "user.create"
    USER_UPDATE = "user.update"
    USER_DELETE = "user.delete"
    USER_BAN = "user.ban"
    USER_UNBAN = "user.unban"
    USER_RESET_PASSWORD = "user.reset_password"
    SERVICE_ADD_USER = "service.add_user"
    SERVICE_UPDATE_ROLE = "service.update_role"
    SERVICE_REMOVE_USER = "service.remove_user"
    SERVICE_CREATE = "service.create"


class AccountCreatedDetails(BaseModel):
    method: str  # invite | direct
    full_name: Optional[str] = None


class ProfileUpdatedDetails(BaseModel):
    full_name: Optional[str] = None
    fields: List[str]


class RemovedRole(BaseModel):
    service: Optional[str] = None
    role: ServiceRoleName


class AccountDeletedDetails(BaseModel):
    removed_roles: List[RemovedRole] = []


class BanDetails(BaseModel):
    duration: str


class ServiceRoleDetails(BaseModel):
    service: Optional[str] = None
    role: ServiceRoleName
    previous_role: Optional[ServiceRoleName] = None


class ServiceCreatedDetails(BaseModel):
    service: str


AuditDetails = Union[
    AccountCreatedDetails,
    ProfileUpdatedDetails,
    AccountDeletedDetails,
    BanDetails,
    ServiceRoleDetails,
    ServiceCreatedDetails,
]


class AuditParty(BaseModel):
    id: str
    email: Optional[str] = None


def party_of(subject) -> AuditParty:
    """Accounts and actors both carry id and email."""
    return AuditParty(id=subject.id, email=subject.email)


class AuditSink(Protocol):
    def insert_audit_log(self, entry: dict) -> dict: ...


class AuditLogger:
    def __init__(self, sink: AuditSink):
        self.sink = sink

    def record(
        self,
        actor: AuditParty,
        action: AuditAction,
        target: Optional[AuditParty] = None,
        details: Optional[AuditDetails] = None,
    ) -> None:
        entry = {
            "actor_id": actor.id,
            "actor_email": actor.email,
            "action": action.value,
            "target_id": target.id if target else None,
            "target_email": target.email if target else None,
            "details": details.model_dump(mode="json", exclude_none=True) if details else None,
        }
        try:
            self.sink.insert_audit_log(entry)
        except Exception as e:
            logger.error(f"Failed to write audit log for {action.value} by {actor.id}: {e}")
