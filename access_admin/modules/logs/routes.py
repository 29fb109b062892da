from fastapi import APIRouter, Depends
from access_admin.core.authorization import ActorContext
from access_admin.core.dependencies import get_actor, get_administration_service, get_store
from access_admin.core.pagination import PageParams, get_page_params
from access_admin.database.store import RelationalStore
from access_admin.modules.logs.schemas import AuditLogListResponse
from access_admin.modules.logs.service import AuditLogService
from uuid import UUID
from typing import Any, Dict, Optional

router = APIRouter(prefix="/logs", tags=["logs"])


def get_audit_log_service(
    store: RelationalStore = Depends(get_store),
    administration: Dict[str, Any] = Depends(get_administration_service),
) -> AuditLogService:
    return AuditLogService(store, administration)


@router.get("", response_model=AuditLogListResponse)
async def list_logs(
    search: Optional[str] = None,
    action: Optional[str] = None,
    actorId: Optional[UUID] = None,
    targetId: Optional[UUID] = None,
    page: PageParams = Depends(get_page_params),
    actor: ActorContext = Depends(get_actor),
    service: AuditLogService = Depends(get_audit_log_service)
):
    """Search the audit trail"""
    return AuditLogListResponse(data=service.list_logs(
        actor, page, search, action,
        str(actorId) if actorId else None,
        str(targetId) if targetId else None,
    ))
