"""
Infinite Notepad — Test Configuration (conftest.py)
=====================================================

Fixture Hierarchy (all function-scoped):
    ├── db_engine / session_factory / db_session: fresh SQLite file per test
    ├── storage: ObjectStorage over tmp_path
    ├── dodo_handler / payment_service: Dodo API behind httpx.MockTransport
    ├── app: create_app() with the above injected and get_db_session overridden
    ├── client: HTTPX AsyncClient over ASGITransport
    └── auth_headers / other_auth_headers: two signed-up users
"""

import os
import tempfile

# Settings are read at import time: set the environment BEFORE any notepad import
_TEST_ROOT = tempfile.mkdtemp(prefix="notepad_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/default.db"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_ROOT, "storage")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-testing"
os.environ["STORAGE_SIGNING_KEY"] = "test-signing-key"
os.environ["DODO_API_KEY"] = "test-dodo-key"
os.environ["DODO_WEBHOOK_SECRET"] = "whsec_test"
os.environ["DODO_PRODUCT_ID"] = "prod_default"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "1"
os.environ["RETRY_JITTER"] = "0"
os.environ["RETRY_MAX_ATTEMPTS"] = "3"

from typing import Callable, Dict, List  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

import notepad.models  # noqa: E402,F401
from notepad.database import Base, get_db_session  # noqa: E402
from notepad.main import create_app  # noqa: E402
from notepad.services.payment_service import DodoPaymentsClient, PaymentService  # noqa: E402
from notepad.services.storage_service import ObjectStorage  # noqa: E402

TEST_PASSWORD = "correct-horse"
WEBHOOK_SECRET = "whsec_test"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/notepad.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """A session for tests that drive repositories directly."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ══════════════════════════════════════════════════════════════════════════
# Storage and payments
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def storage(tmp_path):
    return ObjectStorage(
        storage_root=str(tmp_path / "storage"),
        bucket="note-media",
        signing_key="test-signing-key",
    )


@pytest.fixture
def dodo_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def dodo_handler(dodo_requests) -> Dict[str, Callable]:
    """
    Mutable holder for the mock Dodo API handler.

    Tests replace `dodo_handler["handle"]` to script provider failures.
    """

    def succeed(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "payment_id": f"pay_{len(dodo_requests)}",
                "payment_link": f"https://test.checkout.dodopayments.com/pay_{len(dodo_requests)}",
                "total_amount": 1500,
                "currency": "USD",
            },
        )

    return {"handle": succeed}


@pytest.fixture
def payment_service(dodo_handler, dodo_requests):
    def transport_handler(request: httpx.Request) -> httpx.Response:
        dodo_requests.append(request)
        return dodo_handler["handle"](request)

    client = DodoPaymentsClient(
        api_key="test-dodo-key",
        base_url="https://test.dodopayments.com",
        transport=httpx.MockTransport(transport_handler),
    )
    return PaymentService(client=client, webhook_secret=WEBHOOK_SECRET)


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(session_factory, storage, payment_service):
    application = create_app(storage=storage, payment_service=payment_service)

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_db_session
    return application


@pytest_asyncio.fixture
async def client(app):
    """
    HTTPX AsyncClient routed straight into the app.

        async def test_health(client):
            response = await client.get("/health")
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


async def sign_up(client: AsyncClient, email: str, password: str = TEST_PASSWORD) -> Dict[str, str]:
    """Create an account through the API and return its bearer headers."""
    response = await client.post("/api/auth/signup", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def make_user(client):
    """Factory: `headers = await make_user("carol@example.com")`."""

    async def _make_user(email: str, password: str = TEST_PASSWORD) -> Dict[str, str]:
        return await sign_up(client, email, password)

    return _make_user


@pytest_asyncio.fixture
async def auth_headers(client):
    return await sign_up(client, "alice@example.com")


@pytest_asyncio.fixture
async def other_auth_headers(client):
    return await sign_up(client, "bob@example.com")


@pytest.fixture
def sample_png_bytes():
    """PNG signature plus an empty IHDR-sized payload; enough for upload tests."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
