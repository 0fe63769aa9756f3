"""Scan repository for database operations."""

from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.database.models import Scan


class ScanRepository:
    """Repository for Scan model operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        qr_code_id: int,
        user_agent: str | None = None,
        ip_hash: str | None = None,
        referer: str | None = None,
    ) -> Scan:
        """Record a scan."""
        scan = Scan(
            qr_code_id=qr_code_id,
            user_agent=user_agent,
            ip_hash=ip_hash,
            referer=referer,
        )
        self.session.add(scan)
        await self.session.commit()
        return scan
