from access_admin.core.authorization import Action, ActorContext, TargetDescriptor
from access_admin.core.enforcement import enforce
from access_admin.core.pagination import PageParams
from access_admin.database.store import RelationalStore
from access_admin.modules.logs.schemas import AuditLogListData, AuditLogResponse
from typing import Any, Dict, Optional


class AuditLogService:
    def __init__(self, store: RelationalStore, administration: Dict[str, Any]):
        self.store = store
        self.administration = administration

    def list_logs(
        self,
        actor: ActorContext,
        page: PageParams,
        search: Optional[str] = None,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        target_id: Optional[str] = None,
    ) -> AuditLogListData:
        """Audit entries newest first (admins only)"""
        enforce(actor, Action.VIEW_LOGS, TargetDescriptor(), self.store, self.administration["id"])
        rows, total = self.store.list_audit_logs(
            offset=page.offset,
            limit=page.limit,
            search=search,
            action=action,
            actor_id=actor_id,
            target_id=target_id,
        )
        return AuditLogListData(
            logs=[AuditLogResponse(**row) for row in rows],
            total=total,
            total_pages=page.total_pages(total),
            current_page=page.page,
        )
