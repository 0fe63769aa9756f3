#!/usr/bin/env python3
"""Backfill clients, primary platform domains and QR tenant links."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from qrlanding.config import settings
from qrlanding.database import engine, session_factory
from qrlanding.services.backfill import backfill_default_clients
from qrlanding.services.tenancy import normalize_hostname


async def main() -> None:
    platform_host = normalize_hostname(settings.app_base_url)
    print(f"Using platform host: {platform_host}")

    async with session_factory() as session:
        report = await backfill_default_clients(session, platform_host)

    print(f"Users: {report.users}")
    print(f"Clients created: {report.clients_created}")
    print(f"Primary domains set: {report.primary_domains_set}")
    print(f"QR codes updated: {report.qr_codes_updated}")
    print("Backfill complete")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
