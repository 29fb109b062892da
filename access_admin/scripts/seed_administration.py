"""
Seed the Administration service and its first admins.

The API refuses every request until the caller holds a role in the
Administration service, and refuses to drop below two admins there, so a
fresh database needs this once:

    python -m access_admin.scripts.seed_administration --admin a@example.com --admin b@example.com

Safe to re-run: existing rows are promoted to admin, nothing is removed.
"""

import argparse
import sys
import logging
from access_admin.config.settings import settings
from access_admin.core.authorization import MINIMUM_ADMINISTRATION_ADMINS, ServiceRoleName
from access_admin.database.identity import IdentityProvider
from access_admin.database.store import RelationalStore
from access_admin.database.supabase_client import get_supabase, get_supabase_admin
from typing import Dict, List

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_administration_service(store: RelationalStore) -> Dict:
    """Create the Administration service if it does not exist"""
    service = store.get_service_by_name(settings.administration_service_name)
    if service:
        logger.info(f"Service '{service['name']}' exists ({service['id']})")
        return service
    service = store.create_service(settings.administration_service_name)
    logger.info(f"Created service '{service['name']}' ({service['id']})")
    return service


def seed_admins(store: RelationalStore, identity: IdentityProvider, service: Dict, emails: List[str]) -> int:
    """Give each listed account the admin role in the Administration service"""
    if not emails:
        return 0
    wanted = {e.strip().lower() for e in emails if e.strip()}
    accounts = {a.email.lower(): a for a in identity.list_accounts() if a.email}
    seeded = 0

    for email in sorted(wanted):
        account = accounts.get(email)
        if not account:
            logger.error(f"No account for {email}; invite the user first")
            continue
        existing = store.get_service_role(account.id, service["id"])
        if existing and existing["role"] == ServiceRoleName.ADMIN.value:
            logger.info(f"{email} is already an admin")
            continue
        if existing:
            store.update_service_role_guarded(account.id, service["id"], ServiceRoleName.ADMIN, service["id"])
            logger.info(f"Promoted {email} to admin")
        else:
            store.insert_service_role(account.id, service["id"], ServiceRoleName.ADMIN)
            logger.info(f"Added {email} as admin")
        seeded += 1
    return seeded


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed the Administration service and its admins")
    parser.add_argument("--admin", action="append", default=[], metavar="EMAIL", help="account email to make admin")
    args = parser.parse_args(argv)

    try:
        store = RelationalStore(get_supabase_admin())
        identity = IdentityProvider(get_supabase(), get_supabase_admin())

        logger.info("Starting Administration seeding...")
        service = seed_administration_service(store)
        seeded = seed_admins(store, identity, service, args.admin)

        count = store.count_admins(service["id"])
        logger.info(f"Seeding completed: {seeded} admin(s) added, {count} admin(s) in total")
        if count < MINIMUM_ADMINISTRATION_ADMINS:
            logger.warning(
                f"Only {count} admin(s); at least {MINIMUM_ADMINISTRATION_ADMINS} are expected. "
                "Pass more --admin emails."
            )
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
