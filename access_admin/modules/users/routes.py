from fastapi import APIRouter, Depends
from access_admin.core.audit import AuditLogger
from access_admin.core.authorization import ActorContext
from access_admin.core.dependencies import (
    get_actor, get_administration_service, get_audit_logger, get_identity, get_store
)
from access_admin.core.pagination import PageParams, get_page_params
from access_admin.database.identity import IdentityProvider
from access_admin.database.store import RelationalStore
from access_admin.modules.users.schemas import (
    BanRequest, MessageResponse, RoleFilter, StatusFilter, UserCreate, UserCreatedResponse,
    UserDetailResponse, UserListResponse, UserServiceRolesResponse, UserUpdate, UserUpdatedResponse
)
from access_admin.modules.users.service import UserService
from uuid import UUID
from typing import Any, Dict, Optional

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(
    store: RelationalStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity),
    audit: AuditLogger = Depends(get_audit_logger),
    administration: Dict[str, Any] = Depends(get_administration_service),
) -> UserService:
    return UserService(store, identity, audit, administration)


@router.get("", response_model=UserListResponse)
async def list_users(
    search: Optional[str] = None,
    role: Optional[RoleFilter] = None,
    serviceId: Optional[UUID] = None,
    status: Optional[StatusFilter] = None,
    page: PageParams = Depends(get_page_params),
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """Paginated users with their service roles"""
    service_id = str(serviceId) if serviceId else None
    return UserListResponse(data=service.list_users(page, search, role, service_id, status))


@router.post("", response_model=UserCreatedResponse, status_code=201)
async def create_user(
    user_data: UserCreate,
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """Invite or create a user"""
    return service.create_user(actor, user_data)


@router.get("/{user_id}", response_model=UserDetailResponse)
async def get_user(
    user_id: UUID,
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    return UserDetailResponse(data=service.get_user(str(user_id)))


@router.put("/{user_id}", response_model=UserUpdatedResponse)
async def update_user(
    user_id: UUID,
    user_data: UserUpdate,
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """Update a user's display name (admins only)"""
    return service.update_user(actor, str(user_id), user_data)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: UUID,
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """Delete a user and their service roles (admins only)"""
    return service.delete_user(actor, str(user_id))


@router.post("/{user_id}/ban", response_model=MessageResponse)
async def ban_user(
    user_id: UUID,
    ban_data: BanRequest,
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """Ban or unban a user"""
    return service.ban_user(actor, str(user_id), ban_data)


@router.post("/{user_id}/reset-password", response_model=MessageResponse)
async def reset_password(
    user_id: UUID,
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """Send a password reset email"""
    return service.reset_password(actor, str(user_id))


@router.get("/{user_id}/service-roles", response_model=UserServiceRolesResponse)
async def get_user_service_roles(
    user_id: UUID,
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    return UserServiceRolesResponse(data=service.get_user_service_roles(str(user_id)))
