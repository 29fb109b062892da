from fastapi import APIRouter, Depends
from access_admin.core.audit import AuditLogger
from access_admin.core.authorization import ActorContext
from access_admin.core.dependencies import get_actor, get_administration_service, get_audit_logger, get_store
from access_admin.database.store import RelationalStore
from access_admin.modules.services.schemas import (
    ServiceCreate, ServiceCreatedResponse, ServiceDetailResponse, ServiceListResponse
)
from access_admin.modules.services.service import ServiceCatalogService
from uuid import UUID
from typing import Any, Dict

router = APIRouter(prefix="/services", tags=["services"])


def get_service_catalog(
    store: RelationalStore = Depends(get_store),
    audit: AuditLogger = Depends(get_audit_logger),
    administration: Dict[str, Any] = Depends(get_administration_service),
) -> ServiceCatalogService:
    return ServiceCatalogService(store, audit, administration)


@router.get("", response_model=ServiceListResponse)
async def list_services(
    actor: ActorContext = Depends(get_actor),
    service: ServiceCatalogService = Depends(get_service_catalog)
):
    """List services ordered by name"""
    return ServiceListResponse(data=service.list_services())


@router.post("", response_model=ServiceCreatedResponse, status_code=201)
async def create_service(
    service_data: ServiceCreate,
    actor: ActorContext = Depends(get_actor),
    service: ServiceCatalogService = Depends(get_service_catalog)
):
    """Create a service (admins only)"""
    return service.create_service(actor, service_data)


@router.get("/{service_id}", response_model=ServiceDetailResponse)
async def get_service(
    service_id: UUID,
    actor: ActorContext = Depends(get_actor),
    service: ServiceCatalogService = Depends(get_service_catalog)
):
    return ServiceDetailResponse(data=service.get_service(str(service_id)))
