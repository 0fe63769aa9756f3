"""Tests for hostname normalization and tenant resolution."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from qrlanding.errors import ValidationError
from qrlanding.services.tenancy import (DEFAULT_HOST, TenantContext, normalize_hostname,
                                        resolve_tenant, validate_hostname)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("https://Links.Example.com/", "links.example.com"),
        ("http://localhost:8000", "localhost:8000"),
        ("https://links.example.com/some/path", "links.example.com"),
        ("links.example.com/", "links.example.com"),
        ("LINKS.example.com:8443", "links.example.com:8443"),
        ("  promo.example.com  ", "promo.example.com"),
    ],
)
def test_normalize_hostname(raw, expected):
    assert normalize_hostname(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_normalize_empty_uses_fallback(raw):
    assert normalize_hostname(raw) == DEFAULT_HOST
    assert normalize_hostname(raw, fallback="platform.test") == "platform.test"


def test_validate_hostname_accepts_url():
    assert validate_hostname("https://Links.Example.com/") == "links.example.com"


@pytest.mark.parametrize("raw", [None, "", "  "])
def test_validate_hostname_requires_value(raw):
    with pytest.raises(ValidationError, match="hostname is required"):
        validate_hostname(raw)


@pytest.mark.parametrize("raw", ["bad host.com", "example.com/path"])
def test_validate_hostname_rejects_junk(raw):
    with pytest.raises(ValidationError, match="Invalid hostname"):
        validate_hostname(raw)


class TestResolveTenant:
    @pytest.mark.asyncio
    async def test_unknown_host_has_no_client(self):
        domains = MagicMock()
        domains.get_by_hostname = AsyncMock(return_value=None)

        tenant = await resolve_tenant(domains, "unknown.example.com")

        assert tenant == TenantContext(host="unknown.example.com")
        assert tenant.client_id is None
        domains.get_by_hostname.assert_awaited_once_with("unknown.example.com")

    @pytest.mark.asyncio
    async def test_known_host_maps_to_client(self):
        domain = MagicMock(client_id=7, hostname="links.example.com")
        domains = MagicMock()
        domains.get_by_hostname = AsyncMock(return_value=domain)

        tenant = await resolve_tenant(domains, "links.example.com")

        assert tenant.client_id == 7
        assert tenant.domain is domain

    @pytest.mark.asyncio
    async def test_empty_host_skips_lookup(self):
        domains = MagicMock()
        domains.get_by_hostname = AsyncMock()

        tenant = await resolve_tenant(domains, "")

        assert tenant.client_id is None
        domains.get_by_hostname.assert_not_awaited()
