"""
Core dependencies for route protection and actor resolution
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from access_admin.config.settings import settings
from access_admin.core.audit import AuditLogger
from access_admin.core.authorization import ActorContext, ResolvedRole, ServiceRoleName
from access_admin.core.exceptions import Forbidden, Unauthenticated, UpstreamError
from access_admin.database.identity import Account, IdentityProvider
from access_admin.database.store import RelationalStore
from access_admin.database.supabase_client import get_supabase, get_supabase_admin
from supabase import Client
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must be a 401, not HTTPBearer's 403
security = HTTPBearer(auto_error=False)


def get_store(supabase: Client = Depends(get_supabase_admin)) -> RelationalStore:
    return RelationalStore(supabase)


def get_identity(
    supabase: Client = Depends(get_supabase),
    admin: Client = Depends(get_supabase_admin),
) -> IdentityProvider:
    return IdentityProvider(supabase, admin)


def get_audit_logger(store: RelationalStore = Depends(get_store)) -> AuditLogger:
    return AuditLogger(store)


def get_administration_service(store: RelationalStore = Depends(get_store)) -> Dict[str, Any]:
    """The distinguished service whose role rows gate this API."""
    service = store.get_service_by_name(settings.administration_service_name)
    if not service:
        logger.error(f"Service '{settings.administration_service_name}' is missing; run the seed script")
        raise UpstreamError("Administration service not found")
    return service


def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    identity: IdentityProvider = Depends(get_identity),
) -> Account:
    """Extract the authenticated account from the bearer token"""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthenticated()
    return identity.validate_token(credentials.credentials)


def resolve_administration_role(user_id: str, administration_service_id: str, store: RelationalStore) -> ResolvedRole:
    row = store.get_service_role(user_id, administration_service_id)
    if not row:
        return ResolvedRole.NONE
    return ResolvedRole(row["role"])


def get_resolved_role(
    account: Account = Depends(get_current_account),
    administration: Dict[str, Any] = Depends(get_administration_service),
    store: RelationalStore = Depends(get_store),
) -> ResolvedRole:
    return resolve_administration_role(account.id, administration["id"], store)


def get_actor(
    account: Account = Depends(get_current_account),
    role: ResolvedRole = Depends(get_resolved_role),
) -> ActorContext:
    """Authenticated caller with an Administration role. Non-members get 403."""
    if role == ResolvedRole.NONE:
        logger.info(f"Denied {account.id}: no Administration membership")
        raise Forbidden("Access denied")
    return ActorContext(id=account.id, email=account.email or "", role=ServiceRoleName(role.value))
