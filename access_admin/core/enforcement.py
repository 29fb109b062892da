import logging
from access_admin.core.authorization import (
    Action, ActorContext, InvariantState, TargetDescriptor, authorize, removes_administration_admin
)
from access_admin.core.exceptions import Forbidden
from access_admin.database.store import RelationalStore

logger = logging.getLogger(__name__)


def enforce(
    actor: ActorContext,
    action: Action,
    target: TargetDescriptor,
    store: RelationalStore,
    administration_service_id: str,
) -> None:
    """Run the rule engine, fetching the live admin count only when a rule needs it. Deny raises Forbidden."""
    state = InvariantState()
    if removes_administration_admin(action, target):
        state = InvariantState(administration_admin_count=store.count_admins(administration_service_id))
    decision = authorize(actor, action, target, state)
    if not decision:
        logger.info(f"Denied {action.value} by {actor.id} on {target.user_id}: {decision.reason}")
        raise Forbidden(decision.reason)
