"""Dependencies for the FastAPI application."""

from typing import Annotated

import jwt
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.config import settings
from qrlanding.database.models import User
from qrlanding.database.repositories import DomainRepository, UserRepository
from qrlanding.database.session import get_session, session_factory
from qrlanding.errors import AuthenticationError
from qrlanding.services import ScanService, StorageClient
from qrlanding.services.tenancy import TenantContext, normalize_hostname, resolve_tenant

_ALGORITHM = "HS256"


def _decode_token(authorization: str | None) -> dict:
    """Validate the auth provider's bearer token and return its claims."""
    if not authorization:
        raise AuthenticationError("Unauthorized")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Unauthorized")

    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[_ALGORITHM],
            audience=settings.auth_jwt_audience,
        )
    except jwt.PyJWTError as e:
        raise AuthenticationError("Invalid token") from e


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    session: AsyncSession = Depends(get_session),
) -> User:
    """Get (or lazily register) the user behind the bearer token."""
    claims = _decode_token(authorization)

    auth_id = claims.get("sub")
    if not auth_id:
        raise AuthenticationError("User ID not found in token")

    user, _ = await UserRepository(session).get_or_create(str(auth_id), claims.get("email"))
    return user


async def get_tenant_context(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> TenantContext:
    """Resolve the tenant that owns the request's Host header."""
    host = normalize_hostname(request.headers.get("host"), fallback="")
    return await resolve_tenant(DomainRepository(session), host)


def get_storage_factory() -> type[StorageClient]:
    """Object storage client factory."""
    return StorageClient


def get_scan_service() -> ScanService:
    """Scan recorder with its own sessions, safe to run after the response."""
    return ScanService(session_factory)
