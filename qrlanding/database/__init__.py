from qrlanding.database.models import (Base, Client, Domain, DomainType, Link, LogoShape,
                                       QRCode, RedirectType, Scan, User)
from qrlanding.database.session import engine, get_session, init_db, session_factory

__all__ = [
    "Base",
    "User",
    "Client",
    "Domain",
    "DomainType",
    "QRCode",
    "RedirectType",
    "LogoShape",
    "Link",
    "Scan",
    "engine",
    "session_factory",
    "init_db",
    "get_session",
]
