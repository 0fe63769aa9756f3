"""Scan recording for public short-code visits."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qrlanding.database.repositories import ScanRepository
from qrlanding.utils.hashing import hash_ip

logger = logging.getLogger(__name__)


class ScanService:
    """Records scans without ever failing the caller."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def record_scan(
        self,
        qr_code_id: int,
        ip: str | None = None,
        user_agent: str | None = None,
        referer: str | None = None,
    ) -> bool:
        """Store a scan event. Returns False if recording failed."""
        try:
            async with self.session_factory() as session:
                await ScanRepository(session).create(
                    qr_code_id=qr_code_id,
                    user_agent=user_agent,
                    ip_hash=hash_ip(ip) if ip else None,
                    referer=referer,
                )
        except Exception as e:
            logger.exception(f"Failed to record scan for QR {qr_code_id}: {e}")
            return False
        return True
