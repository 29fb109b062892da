# Supabase tables: services, service_roles, audit_logs
# Schema and the guarded role functions live in sql/schema.sql

import logging
import httpx
from supabase import Client, PostgrestAPIError
from access_admin.core.authorization import Action, ServiceRoleName, minimum_admins_message
from access_admin.core.exceptions import Conflict, MinimumAdminsViolation, UpstreamError, UpstreamTimeout
from typing import Any, Dict, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
GUARD_VIOLATION = "minimum_admins"

SERVICE_ROLE_COLUMNS = "id, user_id, service_id, role, created_at, service:services(id, name)"


def _search_term(search: str) -> str:
    # PostgREST or() filters are comma/paren delimited
    return "".join(ch for ch in search if ch not in ",()*%").strip()


class RelationalStore:
    """Services, service-role rows and the audit trail, via PostgREST."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _execute(self, query, what: str, conflict_message: Optional[str] = None, guard_action: Optional[Action] = None):
        try:
            return query.execute()
        except httpx.TimeoutException as e:
            logger.error(f"Timed out {what}: {e}")
            raise UpstreamTimeout(f"Timed out {what}")
        except PostgrestAPIError as e:
            if conflict_message and e.code == UNIQUE_VIOLATION:
                raise Conflict(conflict_message)
            if guard_action and GUARD_VIOLATION in (e.message or ""):
                raise MinimumAdminsViolation(minimum_admins_message(guard_action))
            logger.error(f"Store error {what}: code={e.code} message={e.message}")
            raise UpstreamError(f"Store error {what}: {e.message}")
        except httpx.HTTPError as e:
            logger.error(f"Store unavailable {what}: {e}")
            raise UpstreamError(f"Store unavailable {what}: {e}")

    # Services

    def get_service(self, service_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table("services")
                .select("*")
                .eq("id", service_id)
                .limit(1),
            "fetching service",
        )
        return result.data[0] if result.data else None

    def get_service_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table("services")
                .select("*")
                .eq("name", name)
                .limit(1),
            "fetching service by name",
        )
        return result.data[0] if result.data else None

    def list_services(self) -> List[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table("services").select("*").order("name"),
            "listing services",
        )
        return result.data or []

    def create_service(self, name: str) -> Dict[str, Any]:
        result = self._execute(
            self.supabase.table("services").insert({"name": name}),
            "creating service",
            conflict_message=f"A service named '{name}' already exists",
        )
        if not result.data:
            raise UpstreamError("Service insert returned no row")
        return result.data[0]

    # Service roles

    def get_service_role(self, user_id: str, service_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table("service_roles")
                .select(SERVICE_ROLE_COLUMNS)
                .eq("user_id", user_id)
                .eq("service_id", service_id)
                .limit(1),
            "fetching service role",
        )
        return result.data[0] if result.data else None

    def list_service_roles(
        self,
        user_ids: Optional[List[str]] = None,
        service_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        if user_ids is not None and len(user_ids) == 0:
            return []
        query = self.supabase.table("service_roles").select(SERVICE_ROLE_COLUMNS)
        if user_ids is not None:
            query = query.in_("user_id", user_ids)
        if service_id:
            query = query.eq("service_id", service_id)
        result = self._execute(query.order("created_at"), "listing service roles")
        return result.data or []

    def user_ids_with_roles(
        self,
        role: Optional[ServiceRoleName] = None,
        service_id: Optional[str] = None,
    ) -> Set[str]:
        query = self.supabase.table("service_roles").select("user_id")
        if role:
            query = query.eq("role", role.value)
        if service_id:
            query = query.eq("service_id", service_id)
        result = self._execute(query, "filtering users by role")
        return {row["user_id"] for row in result.data or []}

    def count_admins(self, service_id: str) -> int:
        """Live count of admin rows in a service. Read immediately before a decision."""
        result = self._execute(
            self.supabase.table("service_roles")
                .select("id", count="exact")
                .eq("service_id", service_id)
                .eq("role", ServiceRoleName.ADMIN.value),
            "counting admins",
        )
        if result.count is not None:
            return result.count
        return len(result.data or [])

    def insert_service_role(self, user_id: str, service_id: str, role: ServiceRoleName) -> Dict[str, Any]:
        result = self._execute(
            self.supabase.table("service_roles").insert({
                "user_id": user_id,
                "service_id": service_id,
                "role": role.value,
            }),
            "inserting service role",
            conflict_message="User already has a role in this service",
        )
        if not result.data:
            raise UpstreamError("Service role insert returned no row")
        return result.data[0]

    def update_service_role_guarded(
        self, user_id: str, service_id: str, role: ServiceRoleName, administration_service_id: str
    ) -> Optional[Dict[str, Any]]:
        """Update a role row; the database re-checks the Administration admin floor under lock."""
        result = self._execute(
            self.supabase.rpc("update_service_role_guarded", {
                "p_user_id": user_id,
                "p_service_id": service_id,
                "p_role": role.value,
                "p_guard_service_id": administration_service_id,
            }),
            "updating service role",
            guard_action=Action.UPDATE_SERVICE_ROLE,
        )
        return result.data[0] if result.data else None

    def delete_service_role_guarded(
        self, user_id: str, service_id: str, administration_service_id: str
    ) -> Optional[Dict[str, Any]]:
        """Delete a role row; returns the deleted row, or None if there was none."""
        result = self._execute(
            self.supabase.rpc("delete_service_role_guarded", {
                "p_user_id": user_id,
                "p_service_id": service_id,
                "p_guard_service_id": administration_service_id,
            }),
            "deleting service role",
            guard_action=Action.REVOKE_SERVICE_ROLE,
        )
        return result.data[0] if result.data else None

    def delete_user_roles_guarded(self, user_id: str, administration_service_id: str) -> List[Dict[str, Any]]:
        """Delete every role row of a user ahead of account deletion; returns the removed rows."""
        result = self._execute(
            self.supabase.rpc("delete_user_roles_guarded", {
                "p_user_id": user_id,
                "p_guard_service_id": administration_service_id,
            }),
            "deleting user roles",
            guard_action=Action.DELETE_ACCOUNT,
        )
        return result.data or []

    def restore_service_roles(self, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        self._execute(
            self.supabase.table("service_roles").upsert(
                [
                    {
                        "user_id": row["user_id"],
                        "service_id": row["service_id"],
                        "role": row["role"],
                        "created_at": row.get("created_at"),
                    }
                    for row in rows
                ],
                on_conflict="user_id,service_id",
            ),
            "restoring service roles",
        )

    # Audit logs

    def insert_audit_log(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        result = self._execute(self.supabase.table("audit_logs").insert(entry), "writing audit log")
        return result.data[0] if result.data else {}

    def list_audit_logs(
        self,
        offset: int,
        limit: int,
        search: Optional[str] = None,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        target_id: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Newest first. Returns (rows, total matching)."""
        query = self.supabase.table("audit_logs")\
            .select("*", count="exact")\
            .order("created_at", desc=True)
        term = _search_term(search or "")
        if term:
            query = query.or_(
                f"actor_email.ilike.%{term}%,target_email.ilike.%{term}%,action.ilike.%{term}%"
            )
        if action:
            query = query.eq("action", action)
        if actor_id:
            query = query.eq("actor_id", actor_id)
        if target_id:
            query = query.eq("target_id", target_id)
        result = self._execute(query.range(offset, offset + limit - 1), "listing audit logs")
        return result.data or [], result.count or 0
