import logging
from access_admin.core.audit import AuditAction, AuditLogger, ServiceRoleDetails, AuditParty, party_of
from access_admin.core.authorization import Action, ActorContext, ServiceRoleName, TargetDescriptor
from access_admin.core.enforcement import enforce
from access_admin.core.exceptions import Conflict, NotFound
from access_admin.database.identity import IdentityProvider
from access_admin.database.store import RelationalStore
from access_admin.modules.service_roles.schemas import (
    ServiceRoleCreate, ServiceRoleResponse, ServiceRoleMutationResponse
)
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ServiceRoleService:
    def __init__(
        self,
        store: RelationalStore,
        identity: IdentityProvider,
        audit: AuditLogger,
        administration: Dict[str, Any],
    ):
        self.store = store
        self.identity = identity
        self.audit = audit
        self.administration = administration

    def _get_service(self, service_id: str) -> Dict[str, Any]:
        service = self.store.get_service(service_id)
        if not service:
            raise NotFound("Service not found")
        return service

    def _target_party(self, user_id: str) -> AuditParty:
        account = self.identity.find_account(user_id)
        return party_of(account) if account else AuditParty(id=user_id)

    def grant_role(self, actor: ActorContext, role_data: ServiceRoleCreate) -> ServiceRoleMutationResponse:
        """Give a user a role in a service. An existing (user, service) row is a conflict, never overwritten."""
        user_id, service_id = str(role_data.user_id), str(role_data.service_id)
        service = self._get_service(service_id)
        target_account = self.identity.get_account(user_id)

        enforce(actor, Action.GRANT_SERVICE_ROLE, TargetDescriptor(
            user_id=user_id,
            concerns_administration=service["id"] == self.administration["id"],
            requested_role=role_data.role,
        ), self.store, self.administration["id"])

        if self.store.get_service_role(user_id, service_id):
            raise Conflict("User already has a role in this service")
        row = self.store.insert_service_role(user_id, service_id, role_data.role)
        logger.info(f"{actor.id} granted {role_data.role.value} in {service['name']} to {user_id}")

        self.audit.record(
            party_of(actor),
            AuditAction.SERVICE_ADD_USER,
            party_of(target_account),
            ServiceRoleDetails(service=service["name"], role=role_data.role),
        )
        row.setdefault("service", {"id": service["id"], "name": service["name"]})
        return ServiceRoleMutationResponse(
            message="User added to service successfully",
            data=ServiceRoleResponse(**row),
        )

    def update_role(
        self, actor: ActorContext, user_id: str, service_id: str, role: ServiceRoleName
    ) -> ServiceRoleMutationResponse:
        service = self._get_service(service_id)
        concerns_administration = service["id"] == self.administration["id"]
        current = self.store.get_service_role(user_id, service_id)
        current_role: Optional[ServiceRoleName] = ServiceRoleName(current["role"]) if current else None

        enforce(actor, Action.UPDATE_SERVICE_ROLE, TargetDescriptor(
            user_id=user_id,
            concerns_administration=concerns_administration,
            administration_role=current_role if concerns_administration else None,
            requested_role=role,
        ), self.store, self.administration["id"])
        if not current:
            raise NotFound("Service role not found")

        row = self.store.update_service_role_guarded(user_id, service_id, role, self.administration["id"])
        if not row:
            raise NotFound("Service role not found")
        logger.info(f"{actor.id} changed {user_id} in {service['name']} to {role.value}")

        self.audit.record(
            party_of(actor),
            AuditAction.SERVICE_UPDATE_ROLE,
            self._target_party(user_id),
            ServiceRoleDetails(service=service["name"], role=role, previous_role=current_role),
        )
        row.setdefault("service", {"id": service["id"], "name": service["name"]})
        return ServiceRoleMutationResponse(
            message="User role updated successfully",
            data=ServiceRoleResponse(**row),
        )

    def revoke_role(self, actor: ActorContext, user_id: str, service_id: str) -> ServiceRoleMutationResponse:
        """Remove a role row. A missing row is NotFound, not a silent success."""
        service = self._get_service(service_id)
        concerns_administration = service["id"] == self.administration["id"]
        current = self.store.get_service_role(user_id, service_id)
        current_role: Optional[ServiceRoleName] = ServiceRoleName(current["role"]) if current else None

        enforce(actor, Action.REVOKE_SERVICE_ROLE, TargetDescriptor(
            user_id=user_id,
            concerns_administration=concerns_administration,
            administration_role=current_role if concerns_administration else None,
        ), self.store, self.administration["id"])
        if not current:
            raise NotFound("Service role not found")

        removed = self.store.delete_service_role_guarded(user_id, service_id, self.administration["id"])
        if not removed:
            raise NotFound("Service role not found")
        logger.info(f"{actor.id} removed {user_id} from {service['name']}")

        self.audit.record(
            party_of(actor),
            AuditAction.SERVICE_REMOVE_USER,
            self._target_party(user_id),
            ServiceRoleDetails(service=service["name"], role=ServiceRoleName(removed["role"])),
        )
        return ServiceRoleMutationResponse(message="User removed from service successfully")
