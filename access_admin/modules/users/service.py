import logging
from collections import defaultdict
from datetime import datetime, timezone
from access_admin.config.settings import settings
from access_admin.core.audit import (
    AuditAction, AuditLogger, AccountCreatedDetails, AccountDeletedDetails,
    BanDetails, ProfileUpdatedDetails, RemovedRole, party_of
)
from access_admin.core.authorization import Action, ActorContext, ServiceRoleName, TargetDescriptor
from access_admin.core.enforcement import enforce
from access_admin.core.exceptions import AppError, ValidationFailed
from access_admin.core.pagination import PageParams
from access_admin.database.identity import Account, IdentityProvider, ban_duration
from access_admin.database.store import RelationalStore
from access_admin.modules.service_roles.schemas import ServiceRoleResponse
from access_admin.modules.users.schemas import (
    BanRequest, CreatedUser, MessageResponse, RoleFilter, StatusFilter,
    UserCreate, UserCreatedResponse, UserListData, UserResponse, UserUpdate, UserUpdatedResponse
)
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(account: Account) -> datetime:
    created = account.created_at or _EPOCH
    return created if created.tzinfo else created.replace(tzinfo=timezone.utc)


def _matches_search(account: Account, term: str) -> bool:
    return term in (account.email or "").lower() or term in (account.full_name or "").lower()


def _matches_status(account: Account, status: StatusFilter, now: datetime) -> bool:
    if status == StatusFilter.VERIFIED:
        return account.email_confirmed_at is not None
    if status == StatusFilter.NOT_VERIFIED:
        return account.email_confirmed_at is None
    return account.is_banned(now)


class UserService:
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

    def _administration_role(self, user_id: str) -> Optional[ServiceRoleName]:
        row = self.store.get_service_role(user_id, self.administration["id"])
        return ServiceRoleName(row["role"]) if row else None

    def _to_response(self, account: Account, roles: List[Dict[str, Any]]) -> UserResponse:
        return UserResponse(
            **account.model_dump(exclude={"user_metadata"}),
            service_roles=[ServiceRoleResponse(**r) for r in roles],
        )

    def list_users(
        self,
        page: PageParams,
        search: Optional[str] = None,
        role: Optional[RoleFilter] = None,
        service_id: Optional[str] = None,
        status: Optional[StatusFilter] = None,
    ) -> UserListData:
        """List accounts newest first, filtered, with each user's service roles."""
        accounts = sorted(self.identity.list_accounts(), key=_sort_key, reverse=True)

        if search and search.strip():
            term = search.strip().lower()
            accounts = [a for a in accounts if _matches_search(a, term)]

        if role == RoleFilter.NONE:
            with_roles = self.store.user_ids_with_roles(service_id=service_id)
            accounts = [a for a in accounts if a.id not in with_roles]
        elif role or service_id:
            wanted = ServiceRoleName(role.value) if role else None
            with_roles = self.store.user_ids_with_roles(role=wanted, service_id=service_id)
            accounts = [a for a in accounts if a.id in with_roles]

        if status:
            now = datetime.now(timezone.utc)
            accounts = [a for a in accounts if _matches_status(a, status, now)]

        total = len(accounts)
        window = accounts[page.offset:page.offset + page.limit]

        roles_by_user: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for row in self.store.list_service_roles(user_ids=[a.id for a in window]):
            roles_by_user[row["user_id"]].append(row)

        return UserListData(
            users=[self._to_response(a, roles_by_user[a.id]) for a in window],
            total=total,
            total_pages=page.total_pages(total),
            current_page=page.page,
        )

    def get_user(self, user_id: str) -> UserResponse:
        account = self.identity.get_account(user_id)
        return self._to_response(account, self.store.list_service_roles(user_ids=[user_id]))

    def get_user_service_roles(self, user_id: str) -> List[ServiceRoleResponse]:
        return [ServiceRoleResponse(**r) for r in self.store.list_service_roles(user_ids=[user_id])]

    def create_user(self, actor: ActorContext, user_data: UserCreate) -> UserCreatedResponse:
        """Invite by email (default) or create a confirmed account directly"""
        enforce(actor, Action.CREATE_ACCOUNT, TargetDescriptor(), self.store, self.administration["id"])
        metadata = {"username": user_data.username, "full_name": user_data.username}
        if user_data.invite:
            account = self.identity.invite_account(user_data.email, metadata)
            message = "User invitation sent successfully"
        else:
            account = self.identity.create_account(user_data.email, metadata, user_data.password)
            message = "User created successfully"
        logger.info(f"{actor.id} created account {account.id} ({'invite' if user_data.invite else 'direct'})")

        self.audit.record(
            party_of(actor),
            AuditAction.USER_CREATE,
            party_of(account),
            AccountCreatedDetails(method="invite" if user_data.invite else "direct", full_name=user_data.username),
        )
        return UserCreatedResponse(
            data=CreatedUser(id=account.id, email=account.email, created_at=account.created_at),
            message=message,
        )

    def update_user(self, actor: ActorContext, user_id: str, user_data: UserUpdate) -> UserUpdatedResponse:
        enforce(actor, Action.UPDATE_ACCOUNT, TargetDescriptor(user_id=user_id), self.store, self.administration["id"])
        account = self.identity.update_account(user_id, {"full_name": user_data.full_name})

        self.audit.record(
            party_of(actor),
            AuditAction.USER_UPDATE,
            party_of(account),
            ProfileUpdatedDetails(full_name=user_data.full_name, fields=["full_name"]),
        )
        return UserUpdatedResponse(
            data=self._to_response(account, self.store.list_service_roles(user_ids=[user_id])),
            message="User updated successfully",
        )

    def delete_user(self, actor: ActorContext, user_id: str) -> MessageResponse:
        """Delete an account and its role rows.

        Role rows are removed first through the guarded store call so the
        Administration admin floor holds even under concurrent deletes. If the
        identity provider then fails, the rows are put back.
        """
        enforce(actor, Action.DELETE_ACCOUNT, TargetDescriptor(
            user_id=user_id,
            administration_role=self._administration_role(user_id),
        ), self.store, self.administration["id"])

        account = self.identity.get_account(user_id)
        roles = self.store.list_service_roles(user_ids=[user_id])
        removed = self.store.delete_user_roles_guarded(user_id, self.administration["id"])
        try:
            self.identity.delete_account(user_id)
        except AppError:
            logger.error(f"Deleting account {user_id} failed; restoring {len(removed)} role rows")
            try:
                self.store.restore_service_roles(removed)
            except AppError as restore_error:
                logger.error(f"Restoring role rows of {user_id} failed, rows lost: {removed}: {restore_error.message}")
            raise
        logger.info(f"{actor.id} deleted account {user_id}")

        self.audit.record(
            party_of(actor),
            AuditAction.USER_DELETE,
            party_of(account),
            AccountDeletedDetails(removed_roles=[
                RemovedRole(service=(r.get("service") or {}).get("name"), role=ServiceRoleName(r["role"]))
                for r in roles
            ]),
        )
        return MessageResponse(message="User deleted successfully")

    def ban_user(self, actor: ActorContext, user_id: str, ban_data: BanRequest) -> MessageResponse:
        """Ban (timed or indefinite) or unban. The same rules guard both directions."""
        enforce(actor, Action.BAN_ACCOUNT, TargetDescriptor(
            user_id=user_id,
            administration_role=self._administration_role(user_id),
        ), self.store, self.administration["id"])

        account = self.identity.set_ban(user_id, ban_duration(ban_data.banned, ban_data.duration_in_days))

        if ban_data.banned:
            days = ban_data.duration_in_days
            duration = f"{days} days" if days else "Indefinite"
            self.audit.record(party_of(actor), AuditAction.USER_BAN, party_of(account), BanDetails(duration=duration))
            return MessageResponse(message="User banned successfully")
        self.audit.record(party_of(actor), AuditAction.USER_UNBAN, party_of(account))
        return MessageResponse(message="User unbanned successfully")

    def reset_password(self, actor: ActorContext, user_id: str) -> MessageResponse:
        enforce(actor, Action.RESET_PASSWORD, TargetDescriptor(user_id=user_id), self.store, self.administration["id"])
        account = self.identity.get_account(user_id)
        if not account.email:
            raise ValidationFailed("User has no email address")
        self.identity.send_password_reset(account.email, settings.password_reset_redirect_url)

        self.audit.record(party_of(actor), AuditAction.USER_RESET_PASSWORD, party_of(account))
        return MessageResponse(message="Password reset email sent successfully")
