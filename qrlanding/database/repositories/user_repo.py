"""User repository for database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.database.models import User


class UserRepository:
    """Repository for User model operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_auth_id(self, auth_id: str) -> User | None:
        """Get user by the auth provider's subject id."""
        result = await self.session.execute(select(User).where(User.auth_id == auth_id))
        return result.scalar_one_or_none()

    async def get_all(self) -> list[User]:
        """Get all users."""
        result = await self.session.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    async def create(self, auth_id: str, email: str | None = None) -> User:
        """Create new user."""
        user = User(auth_id=auth_id, email=email)
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def get_or_create(self, auth_id: str, email: str | None = None) -> tuple[User, bool]:
        """Get existing user or create new one. Returns (user, created)."""
        user = await self.get_by_auth_id(auth_id)
        if user:
            if email and user.email != email:
                user.email = email
                await self.session.commit()
            return user, False

        user = await self.create(auth_id, email)
        return user, True
