"""Domain service for business logic."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.database.models import Client, Domain, DomainType, User
from qrlanding.database.repositories import ClientRepository, DomainRepository
from qrlanding.errors import NotFoundError
from qrlanding.services.tenancy import validate_hostname

logger = logging.getLogger(__name__)


class DomainService:
    """Service for per-tenant domain management."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.client_repo = ClientRepository(session)
        self.domain_repo = DomainRepository(session)

    async def get_client(self, user: User) -> Client:
        """Get the user's client, creating it on first access."""
        return await self.client_repo.find_or_create(user.id)

    async def list_domains(self, user: User) -> list[Domain]:
        """List the user's domains, primary first."""
        client = await self.get_client(user)
        return await self.domain_repo.list_by_client(client.id)

    async def add_domain(
        self, user: User, raw_hostname: str, type: DomainType = DomainType.CUSTOM
    ) -> Domain:
        """Register a hostname for the user's client.

        The first domain a client ever adds becomes its primary domain.
        """
        hostname = validate_hostname(raw_hostname)
        client = await self.get_client(user)

        existing_count = await self.domain_repo.count_by_client(client.id)
        domain = await self.domain_repo.create(
            client_id=client.id,
            hostname=hostname,
            type=type,
            verified=False,
            primary=existing_count == 0,
        )
        logger.info(f"Added domain {hostname} for client {client.id} (primary={domain.is_primary})")
        return domain

    async def _get_owned(self, user: User, domain_id: int) -> tuple[Client, Domain]:
        client = await self.get_client(user)
        domain = await self.domain_repo.get_by_id(domain_id)
        if not domain or domain.client_id != client.id:
            raise NotFoundError("Domain not found")
        return client, domain

    async def set_primary(self, user: User, domain_id: int) -> Domain:
        """Make one of the user's domains the primary one."""
        client, domain = await self._get_owned(user, domain_id)
        await self.domain_repo.set_primary(client.id, domain.id)
        await self.session.refresh(domain)
        logger.info(f"Domain {domain.hostname} is now primary for client {client.id}")
        return domain

    async def remove_domain(self, user: User, domain_id: int) -> None:
        """Delete one of the user's domains."""
        client, domain = await self._get_owned(user, domain_id)
        hostname = domain.hostname
        promoted = await self.domain_repo.delete(domain)
        logger.info(f"Removed domain {hostname} for client {client.id}")
        if promoted:
            logger.info(f"Domain {promoted.hostname} promoted to primary for client {client.id}")

    async def get_primary(self, client_id: int) -> Domain | None:
        """Get a client's primary domain."""
        return await self.domain_repo.get_primary(client_id)
