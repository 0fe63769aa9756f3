"""Domain repository for database operations."""

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.database.models import Domain, DomainType, QRCode
from qrlanding.errors import ConflictError, NotFoundError


class DomainRepository:
    """Repository for Domain model operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_hostname(self, hostname: str) -> Domain | None:
        """Get domain by exact hostname."""
        result = await self.session.execute(select(Domain).where(Domain.hostname == hostname))
        return result.scalar_one_or_none()

    async def get_by_id(self, domain_id: int) -> Domain | None:
        """Get domain by ID."""
        result = await self.session.execute(select(Domain).where(Domain.id == domain_id))
        return result.scalar_one_or_none()

    async def list_by_client(self, client_id: int) -> list[Domain]:
        """Get a client's domains, primary first, then oldest first."""
        result = await self.session.execute(
            select(Domain)
            .where(Domain.client_id == client_id)
            .order_by(Domain.is_primary.desc(), Domain.created_at, Domain.id)
        )
        return list(result.scalars().all())

    async def count_by_client(self, client_id: int) -> int:
        """Count a client's domains."""
        result = await self.session.execute(
            select(func.count()).select_from(Domain).where(Domain.client_id == client_id)
        )
        return result.scalar_one()

    async def get_primary(self, client_id: int) -> Domain | None:
        """Get the client's primary domain, if any."""
        result = await self.session.execute(
            select(Domain).where(Domain.client_id == client_id, Domain.is_primary.is_(True))
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        client_id: int,
        hostname: str,
        type: DomainType = DomainType.CUSTOM,
        verified: bool = False,
        primary: bool = False,
    ) -> Domain:
        """Create a domain. Raises ConflictError if the hostname is taken."""
        domain = Domain(
            client_id=client_id,
            hostname=hostname,
            type=type,
            verified=verified,
            is_primary=primary,
        )
        self.session.add(domain)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("Hostname already in use") from e
        await self.session.refresh(domain)
        return domain

    async def upsert(
        self,
        client_id: int,
        hostname: str,
        type: DomainType,
        verified: bool,
        primary: bool,
    ) -> Domain:
        """Create or take over a domain by hostname.

        When ``primary`` is set, the client's previous primary is cleared in
        the same transaction.
        """
        try:
            if primary:
                await self._clear_primary(client_id)

            domain = await self.get_by_hostname(hostname)
            if domain is None:
                domain = Domain(hostname=hostname)
                self.session.add(domain)
            domain.client_id = client_id
            domain.type = type
            domain.verified = verified
            domain.is_primary = primary

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(domain)
        return domain

    async def set_primary(self, client_id: int, domain_id: int) -> None:
        """Make ``domain_id`` the client's only primary domain.

        The clear and the set are committed together or not at all.
        """
        try:
            await self._clear_primary(client_id)
            result = await self.session.execute(
                update(Domain)
                .where(Domain.id == domain_id, Domain.client_id == client_id)
                .values(is_primary=True)
            )
            if result.rowcount != 1:
                raise NotFoundError("Domain not found")
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def delete(self, domain: Domain) -> Domain | None:
        """Delete a domain, promoting the oldest remaining one if it was primary.

        QR codes linked to the deleted domain move to the client's primary
        domain, or to no domain when none is left. Returns the newly promoted
        domain, if any.
        """
        client_id = domain.client_id
        domain_id = domain.id
        was_primary = domain.is_primary
        promoted = None
        try:
            if was_primary:
                result = await self.session.execute(
                    select(Domain)
                    .where(Domain.client_id == client_id, Domain.id != domain_id)
                    .order_by(Domain.created_at, Domain.id)
                    .limit(1)
                )
                promoted = result.scalar_one_or_none()
                target = promoted
            else:
                target = await self.get_primary(client_id)

            await self.session.execute(
                update(QRCode)
                .where(QRCode.domain_id == domain_id)
                .values(domain_id=target.id if target is not None else None)
            )
            await self.session.delete(domain)
            await self.session.flush()

            if promoted is not None:
                promoted.is_primary = True

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return promoted

    async def _clear_primary(self, client_id: int) -> None:
        await self.session.execute(
            update(Domain)
            .where(Domain.client_id == client_id, Domain.is_primary.is_(True))
            .values(is_primary=False)
        )
