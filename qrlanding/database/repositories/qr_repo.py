"""QR code repository for database operations."""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.database.models import Link, QRCode, Scan
from qrlanding.errors import ConflictError


class QRCodeRepository:
    """Repository for QRCode model operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, qr_code_id: int) -> QRCode | None:
        """Get QR code by ID with links loaded."""
        result = await self.session.execute(select(QRCode).where(QRCode.id == qr_code_id))
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: int) -> QRCode | None:
        """Get the QR code owned by a user."""
        result = await self.session.execute(select(QRCode).where(QRCode.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_by_short_code(self, short_code: str, active_only: bool = True) -> QRCode | None:
        """Get QR code by short code, by default only if active."""
        query = select(QRCode).where(QRCode.short_code == short_code)
        if active_only:
            query = query.where(QRCode.is_active.is_(True))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_all_by_user(self, user_id: int) -> list[QRCode]:
        """Get every QR code a user owns."""
        result = await self.session.execute(select(QRCode).where(QRCode.user_id == user_id))
        return list(result.scalars().all())

    async def short_code_exists(self, short_code: str) -> bool:
        """Check whether a short code is already taken."""
        result = await self.session.execute(
            select(QRCode.id).where(QRCode.short_code == short_code)
        )
        return result.first() is not None

    async def create(self, user_id: int, short_code: str, **fields: Any) -> QRCode:
        """Create a QR code. Raises ConflictError on a unique-constraint clash."""
        qr_code = QRCode(user_id=user_id, short_code=short_code, links=[], **fields)
        self.session.add(qr_code)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("QR code already exists") from e
        await self.session.refresh(qr_code)
        return qr_code

    async def save(self, qr_code: QRCode) -> QRCode:
        """Persist pending changes on a QR code."""
        await self.session.commit()
        await self.session.refresh(qr_code)
        return qr_code

    async def replace_links(self, qr_code: QRCode, links: list[tuple[str, str]]) -> QRCode:
        """Replace all links with ``(title, url)`` pairs, keeping their order."""
        qr_code.links.clear()
        for position, (title, url) in enumerate(links):
            qr_code.links.append(
                Link(title=title, url=url, position=position, is_active=True)
            )
        return await self.save(qr_code)

    async def scan_count(self, qr_code_id: int) -> int:
        """Count recorded scans."""
        result = await self.session.execute(
            select(func.count()).select_from(Scan).where(Scan.qr_code_id == qr_code_id)
        )
        return result.scalar_one()
