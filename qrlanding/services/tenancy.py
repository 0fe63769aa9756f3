"""Hostname normalization and hostname-to-tenant resolution."""

import re
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlsplit

from qrlanding.database.models import Domain
from qrlanding.errors import ValidationError

DEFAULT_HOST = "localhost:8000"

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


class DomainLookup(Protocol):
    async def get_by_hostname(self, hostname: str) -> Domain | None: ...


@dataclass(frozen=True)
class TenantContext:
    """Who the inbound host belongs to, if anyone."""

    host: str
    domain: Domain | None = None
    client_id: int | None = None


def normalize_hostname(raw: str | None, fallback: str = DEFAULT_HOST) -> str:
    """Reduce a URL or bare host to a lower-cased ``host[:port]``.

    Examples:
    - "https://Links.Example.com/" -> "links.example.com"
    - "links.example.com/" -> "links.example.com"
    - "" -> fallback
    """
    value = (raw or "").strip()
    if not value:
        return fallback

    try:
        parts = urlsplit(value)
        if parts.scheme and parts.netloc:
            return parts.netloc.lower()
    except ValueError:
        pass

    value = _SCHEME_RE.sub("", value)
    if value.endswith("/"):
        value = value[:-1]
    return value.lower() or fallback


def validate_hostname(raw: str | None) -> str:
    """Normalize a hostname submitted for registration, rejecting junk."""
    if not raw or not raw.strip():
        raise ValidationError("hostname is required")

    hostname = normalize_hostname(raw, fallback="")
    if not hostname or "/" in hostname or any(ch.isspace() for ch in hostname):
        raise ValidationError("Invalid hostname")
    return hostname


async def resolve_tenant(domains: DomainLookup, host: str) -> TenantContext:
    """Map an already normalized host to its domain and owning client.

    Matching is exact. An unknown host is not an error; callers fall back to
    platform behavior when ``client_id`` is None.
    """
    if not host:
        return TenantContext(host=host)

    domain = await domains.get_by_hostname(host)
    return TenantContext(
        host=host,
        domain=domain,
        client_id=domain.client_id if domain else None,
    )
