"""Client (tenant) repository for database operations."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.database.models import Client


class ClientRepository:
    """Repository for Client model operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_owner(self, owner_user_id: int) -> Client | None:
        """Get the client owned by a user."""
        result = await self.session.execute(
            select(Client).where(Client.owner_user_id == owner_user_id)
        )
        return result.scalar_one_or_none()

    async def find_or_create(self, owner_user_id: int) -> Client:
        """Get the user's client, creating it on first access."""
        client = await self.get_by_owner(owner_user_id)
        if client:
            return client

        client = Client(owner_user_id=owner_user_id)
        self.session.add(client)
        try:
            await self.session.commit()
        except IntegrityError:
            # Created concurrently by another request
            await self.session.rollback()
            existing = await self.get_by_owner(owner_user_id)
            if existing is None:
                raise
            return existing

        await self.session.refresh(client)
        return client
