from fastapi import APIRouter, Depends
from access_admin.core.audit import AuditLogger
from access_admin.core.authorization import ActorContext
from access_admin.core.dependencies import (
    get_actor, get_administration_service, get_audit_logger, get_identity, get_store
)
from access_admin.database.identity import IdentityProvider
from access_admin.database.store import RelationalStore
from access_admin.modules.service_roles.schemas import (
    ServiceRoleCreate, ServiceRoleUpdate, ServiceRoleMutationResponse
)
from access_admin.modules.service_roles.service import ServiceRoleService
from uuid import UUID
from typing import Any, Dict

router = APIRouter(prefix="/service-roles", tags=["service-roles"])


def get_service_role_service(
    store: RelationalStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity),
    audit: AuditLogger = Depends(get_audit_logger),
    administration: Dict[str, Any] = Depends(get_administration_service),
) -> ServiceRoleService:
    return ServiceRoleService(store, identity, audit, administration)


@router.post("", response_model=ServiceRoleMutationResponse, status_code=201)
async def grant_service_role(
    role_data: ServiceRoleCreate,
    actor: ActorContext = Depends(get_actor),
    service: ServiceRoleService = Depends(get_service_role_service)
):
    """Add a user to a service with a role"""
    return service.grant_role(actor, role_data)


@router.put("/{user_id}/{service_id}", response_model=ServiceRoleMutationResponse)
async def update_service_role(
    user_id: UUID,
    service_id: UUID,
    role_data: ServiceRoleUpdate,
    actor: ActorContext = Depends(get_actor),
    service: ServiceRoleService = Depends(get_service_role_service)
):
    """Change a user's role in a service"""
    return service.update_role(actor, str(user_id), str(service_id), role_data.role)


@router.delete("/{user_id}/{service_id}", response_model=ServiceRoleMutationResponse)
async def revoke_service_role(
    user_id: UUID,
    service_id: UUID,
    actor: ActorContext = Depends(get_actor),
    service: ServiceRoleService = Depends(get_service_role_service)
):
    """Remove a user from a service"""
    return service.revoke_role(actor, str(user_id), str(service_id))
