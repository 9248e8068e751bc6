"""
Pytest configuration and fixtures for Download Portal tests.

Provides common fixtures for:
- A per-test SQLite database (file-backed so concurrent sessions really
  contend for the write lock)
- A download root populated with public, protected and outside files
- An HTTP client bound to the ASGI app with dependency overrides
- Seeded users and catalog entries
"""

import os

# Settings are read at import time; pin the test environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("MAIL_API_KEY", "")

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from download_portal.api.deps import get_download_root
from download_portal.core.config import settings
from download_portal.db.session import Base, build_engine, get_db
from download_portal.main import app
from download_portal.models import DownloadFile
from download_portal.services.auth import AuthService
from download_portal.services.downloads import DownloadService

TEST_USERNAME = "alice"
TEST_PASSWORD = "correct horse battery staple"

PUBLIC_FILE_PATH = "public/readme.txt"
PUBLIC_FILE_BYTES = b"public file contents\n"
PROTECTED_FILE_PATH = "protected/report.bin"
PROTECTED_FILE_BYTES = b"\x00\x01protected report\xff"
OUTSIDE_FILE_BYTES = b"must never be served"


# =============================================================================
# Filesystem Fixtures
# =============================================================================


@pytest.fixture
def downloads_dir(tmp_path: Path) -> Path:
    """Download root with one public file, one protected file, and a file outside it."""
    root = tmp_path / "downloads"
    (root / "public").mkdir(parents=True)
    (root / "protected").mkdir()
    (root / PUBLIC_FILE_PATH).write_bytes(PUBLIC_FILE_BYTES)
    (root / PROTECTED_FILE_PATH).write_bytes(PROTECTED_FILE_BYTES)
    (tmp_path / "outside.txt").write_bytes(OUTSIDE_FILE_BYTES)
    return root


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def async_engine(tmp_path: Path):
    """Create a file-backed async SQLite engine with all tables."""
    engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"timeout": 30},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and inspecting test data."""
    async with session_factory() as session:
        yield session


# =============================================================================
# Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(session_factory, downloads_dir) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client against the app; each request gets its own DB session."""

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_download_root] = lambda: downloads_dir

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# User and Catalog Fixtures
# =============================================================================


@pytest.fixture
def test_user_data() -> dict:
    """Login credentials of the standard test user."""
    return {"username": TEST_USERNAME, "password": TEST_PASSWORD}


@pytest_asyncio.fixture
async def test_user_id(db_session, test_user_data) -> str:
    """Create the standard test user and return its id."""
    return await AuthService(db_session, settings).create_user(
        test_user_data["username"], test_user_data["password"]
    )


@pytest_asyncio.fixture
async def public_file(db_session) -> DownloadFile:
    return await DownloadService(db_session).add_file(
        file_path=PUBLIC_FILE_PATH,
        display_name="Read me",
        description="Open to everyone",
    )


@pytest_asyncio.fixture
async def protected_file(db_session) -> DownloadFile:
    return await DownloadService(db_session).add_file(
        file_path=PROTECTED_FILE_PATH,
        display_name="Quarterly report",
        is_protected=True,
    )


@pytest_asyncio.fixture
async def logged_in_client(client, test_user_id, test_user_data) -> httpx.AsyncClient:
    """Client holding a valid session cookie for the test user."""
    response = await client.post("/api/auth/login", json=test_user_data)
    assert response.status_code == 200, response.text
    return client
