"""
Pytest configuration and core fixtures.

Every test gets its own SQLite database file created from the model
metadata. The app's session dependency and the audit logger both point at
it, and RabbitMQ publishing is mocked so no broker is needed.
"""

import os
from pathlib import Path
import tempfile

# Configure the environment before any nextsub module reads the settings
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / 'nextsub_test.db'}"
)
os.environ["ADMIN_EMAIL"] = "Admin@NextSub.Example.com"
os.environ["ADMIN_CODE_HASH_ROUNDS"] = "4"
os.environ["ADMIN_CODE_DELIVERY"] = "queue"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["ENABLE_MESSAGING"] = "false"
os.environ["SENTRY_DSN"] = ""

from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

ADMIN_EMAIL = "admin@nextsub.example.com"


def issued_code(mock_publish: AsyncMock) -> str:
    """Plaintext code from the most recent admin code email event."""
    _, event = mock_publish.call_args.args[:2]
    return event["code"]


@pytest.fixture
def admin_email() -> str:
    return ADMIN_EMAIL


@pytest.fixture
def last_code(mock_publish: AsyncMock):
    """Callable returning the plaintext code of the latest queued email."""
    return lambda: issued_code(mock_publish)


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    from nextsub.core.db import build_engine, init_db

    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(test_engine)
    try:
        yield test_engine
    finally:
        await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    from nextsub.core.db import build_sessionmaker

    return build_sessionmaker(engine)


@pytest.fixture
async def audit(session_factory: async_sessionmaker):
    """Persist audit entries to the test database; drained on teardown."""
    from nextsub.core.services.audit import AuditLogger

    AuditLogger.init(session_factory)
    try:
        yield AuditLogger
    finally:
        await AuditLogger.drain()
        AuditLogger._reset()


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker, audit
) -> AsyncGenerator[AsyncSession, None]:
    """Session for direct store access; closed before pending audit writes drain."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def flush_audit(db_session: AsyncSession, audit):
    """
    Wait for pending audit writes.

    The test session's open transaction is committed first: SQLite
    transactions hold the write lock, so the audit writer would queue behind it.
    """

    async def _flush():
        if db_session.in_transaction():
            await db_session.commit()
        await audit.drain()

    return _flush


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Start every test with empty in-memory rate-limit counters."""
    from nextsub.core.services.rate_limit import MemoryBackend, get_rate_limiter

    backend = get_rate_limiter().backend
    if isinstance(backend, MemoryBackend):
        backend.clear()
    yield
    if isinstance(backend, MemoryBackend):
        backend.clear()


@pytest.fixture(autouse=True)
def mock_publish():
    """Auto-mock the queue publisher so no RabbitMQ connection is made.

    Note: publish_event is patched where it is imported, because Python binds
    the import to the module's namespace.
    """
    with patch(
        "nextsub.core.services.admin_auth.publish_event",
        new_callable=AsyncMock,
    ) as mocked:
        yield mocked


@pytest.fixture
def client_context():
    from nextsub.core.dependencies.client import ClientContext

    return ClientContext(client_key="10.0.0.1", client_agent="pytest")


@pytest.fixture
def app():
    """Create FastAPI application for testing."""
    from nextsub.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
async def client(
    app, session_factory: async_sessionmaker, audit
) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client bound to the test database.

    Each request gets its own session, as in production, so concurrent
    requests exercise real transaction isolation.
    """
    from nextsub.core.dependencies import get_async_session

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_session

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_async_session, None)


@pytest.fixture
def admin_token() -> str:
    from nextsub.core.services.token import TokenIssuer

    return TokenIssuer.issue(ADMIN_EMAIL).token
