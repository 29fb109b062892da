import logging
from access_admin.core.audit import AuditAction, AuditLogger, ServiceCreatedDetails, party_of
from access_admin.core.authorization import Action, ActorContext, ServiceRoleName, TargetDescriptor
from access_admin.core.enforcement import enforce
from access_admin.core.exceptions import NotFound
from access_admin.database.store import RelationalStore
from access_admin.modules.services.schemas import (
    ServiceCreate, ServiceCreatedResponse, ServiceDetail, ServiceMember, ServiceResponse
)
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class ServiceCatalogService:
    def __init__(self, store: RelationalStore, audit: AuditLogger, administration: Dict[str, Any]):
        self.store = store
        self.audit = audit
        self.administration = administration

    def list_services(self) -> List[ServiceResponse]:
        return [ServiceResponse(**s) for s in self.store.list_services()]

    def get_service(self, service_id: str) -> ServiceDetail:
        """Service with its role rows and admin/user counts"""
        service = self.store.get_service(service_id)
        if not service:
            raise NotFound("Service not found")
        rows = self.store.list_service_roles(service_id=service_id)
        admins = sum(1 for r in rows if r["role"] == ServiceRoleName.ADMIN.value)
        return ServiceDetail(
            **service,
            admin_count=admins,
            user_count=len(rows) - admins,
            total_users=len(rows),
            members=[ServiceMember(user_id=r["user_id"], role=r["role"], created_at=r.get("created_at")) for r in rows],
        )

    def create_service(self, actor: ActorContext, service_data: ServiceCreate) -> ServiceCreatedResponse:
        enforce(actor, Action.CREATE_SERVICE, TargetDescriptor(), self.store, self.administration["id"])
        name = service_data.name.strip()
        service = self.store.create_service(name)
        logger.info(f"{actor.id} created service {service['id']} ({name})")

        self.audit.record(party_of(actor), AuditAction.SERVICE_CREATE, details=ServiceCreatedDetails(service=name))
        return ServiceCreatedResponse(data=ServiceResponse(**service), message="Service created successfully")
