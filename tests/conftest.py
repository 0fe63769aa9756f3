"""Shared fixtures: an in-memory database per test, fake storage, API client."""

import io
from typing import Any

import jwt
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from qrlanding.api.dependencies import get_scan_service, get_storage_factory
from qrlanding.api.main import app
from qrlanding.config import settings
from qrlanding.database.models import Base, User
from qrlanding.database.repositories import UserRepository
from qrlanding.database.session import enable_sqlite_foreign_keys, get_session
from qrlanding.errors import StorageError
from qrlanding.services import ScanService, StorageClient

TEST_DATABASE_URL = "sqlite+aiosqlite://"


def make_engine():
    """In-memory SQLite shared by every session of one engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    return engine


async def create_tables(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def make_png(color: tuple[int, int, int, int] = (220, 20, 60, 255), size: int = 64) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (size, size), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeStorage(StorageClient):
    """StorageClient that keeps objects in a dict instead of calling the API."""

    def __init__(self) -> None:
        super().__init__(base_url="https://storage.test", service_key="test-key", bucket="qr-logos")
        self.objects: dict[str, bytes] = {}
        self.removed: list[str] = []
        self.fail_upload = False
        self.fail_download = False
        self.bucket_exists = False

    async def __aenter__(self) -> "FakeStorage":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_upload:
            raise StorageError("Upload failed with status 500: boom")
        self.objects[path] = data
        return self.public_url(path)

    async def remove(self, path: str) -> bool:
        self.removed.append(path)
        return self.objects.pop(path, None) is not None

    async def download(self, url: str) -> bytes:
        path = self.path_from_public_url(url)
        if self.fail_download or path not in self.objects:
            raise StorageError("Download failed with status 404")
        return self.objects[path]

    async def ensure_bucket(self) -> bool:
        created = not self.bucket_exists
        self.bucket_exists = True
        return created


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def logo_png() -> bytes:
    return make_png()


@pytest_asyncio.fixture
async def engine():
    engine = make_engine()
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(session) -> User:
    return await UserRepository(session).create("auth-alice", "alice@example.com")


@pytest_asyncio.fixture
async def other_user(session) -> User:
    return await UserRepository(session).create("auth-bob", "bob@example.com")


def make_token(sub: str = "auth-alice", email: str | None = "alice@example.com", **claims: Any) -> str:
    payload = {"sub": sub, "email": email, "aud": settings.auth_jwt_audience, **claims}
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm="HS256")


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def other_auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token('auth-bob', 'bob@example.com')}"}


@pytest.fixture
def api_client(monkeypatch, storage):
    """TestClient over a private in-memory database.

    The database is created and used only inside the client's event loop.
    """
    engine = make_engine()
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session():
        async with factory() as session:
            yield session

    async def init_test_db() -> None:
        await create_tables(engine)

    monkeypatch.setattr("qrlanding.api.main.init_db", init_test_db)
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_scan_service] = lambda: ScanService(factory)
    app.dependency_overrides[get_storage_factory] = lambda: lambda: storage

    with TestClient(app) as client:
        client.session_factory = factory
        yield client
        client.portal.call(engine.dispose)

    app.dependency_overrides.clear()
