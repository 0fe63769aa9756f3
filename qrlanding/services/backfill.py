"""Backfill tenants and platform domains for users created before multi-tenancy."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.database.models import DomainType
from qrlanding.database.repositories import (ClientRepository, DomainRepository,
                                             QRCodeRepository, UserRepository)

logger = logging.getLogger(__name__)


@dataclass
class BackfillReport:
    users: int = 0
    clients_created: int = 0
    primary_domains_set: int = 0
    qr_codes_updated: int = 0


async def backfill_default_clients(session: AsyncSession, platform_host: str) -> BackfillReport:
    """Give every user a client, a primary domain, and link their QR codes.

    Safe to run repeatedly; rows that are already linked are left alone.
    """
    report = BackfillReport()
    user_repo = UserRepository(session)
    client_repo = ClientRepository(session)
    domain_repo = DomainRepository(session)
    qr_repo = QRCodeRepository(session)

    users = await user_repo.get_all()
    report.users = len(users)

    for user in users:
        client = await client_repo.get_by_owner(user.id)
        if client is None:
            client = await client_repo.find_or_create(user.id)
            report.clients_created += 1
            logger.info(f"Created client {client.id} for user {user.id}")

        primary = await domain_repo.get_primary(client.id)
        if primary is None:
            owner = await domain_repo.get_by_hostname(platform_host)
            if owner is not None and owner.client_id != client.id:
                # Taking the host over would leave its owner without a primary
                logger.warning(
                    f"Platform host {platform_host} belongs to client {owner.client_id}, "
                    f"no primary domain for client {client.id}"
                )
            else:
                primary = await domain_repo.upsert(
                    client_id=client.id,
                    hostname=platform_host,
                    type=DomainType.PLATFORM,
                    verified=True,
                    primary=True,
                )
                report.primary_domains_set += 1
                logger.info(f"Ensured primary platform domain for client {client.id}")

        for qr_code in await qr_repo.get_all_by_user(user.id):
            changed = False
            if qr_code.client_id is None:
                qr_code.client_id = client.id
                changed = True
            if qr_code.domain_id is None and primary is not None:
                qr_code.domain_id = primary.id
                changed = True
            if changed:
                await qr_repo.save(qr_code)
                report.qr_codes_updated += 1
                logger.info(f"Backfilled QR {qr_code.id}")

    return report
