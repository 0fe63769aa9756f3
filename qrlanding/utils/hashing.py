"""Hashing helpers for scan analytics."""

import hashlib

from qrlanding.config import settings


def hash_ip(ip: str, salt: str | None = None) -> str:
    """Hash a client IP so raw addresses are never stored."""
    salt = settings.ip_hash_salt if salt is None else salt
    return hashlib.sha256(f"{ip}{salt}".encode()).hexdigest()


def client_ip(forwarded_for: str | None, real_ip: str | None) -> str | None:
    """Pick the originating client IP from proxy headers."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return real_ip or None
