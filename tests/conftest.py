"""
Pytest configuration and fixtures for testing
"""
import hashlib
import hmac
import json
import time
from datetime import datetime, timezone

import httpx
import pytest
from google.api_core import exceptions as gexc
from google.cloud import firestore
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import Settings
from database import Base, get_db

# Create in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_WEBHOOK_SECRET = "whsec_test_secret"

# Create test engine; StaticPool keeps every session on the same in-memory database
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    future=True,
    poolclass=StaticPool,
)

# Create test session factory
TestAsyncSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


def make_settings(**overrides) -> Settings:
    """Settings isolated from the host environment's .env file."""
    values = {
        "stripe_secret_key": "sk_test_123",
        "stripe_webhook_secret": TEST_WEBHOOK_SECRET,
        "recaptcha_secret_key": "recaptcha-secret",
        "frontend_url": "http://localhost:5175",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def sign_payload(payload: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header using Stripe's t=...,v1=... HMAC scheme."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_completed_payload(
    user_id="u1",
    app_id=None,
    session_id="cs_test_123",
    event_id="evt_test_1",
    event_type="checkout.session.completed",
) -> bytes:
    metadata = {}
    if user_id is not None:
        metadata["userId"] = user_id
    if app_id is not None:
        metadata["appId"] = app_id
    event = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_status": "paid",
                "metadata": metadata,
            }
        },
    }
    return json.dumps(event).encode("utf-8")


async def override_get_db():
    """Override get_db to use test database"""
    async with TestAsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest.fixture
async def create_tables():
    # Import models to ensure they're registered with Base
    import database_models  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Fresh connection per test so no connection outlives its event loop
    await test_engine.dispose()


@pytest.fixture
async def test_db(create_tables):
    """
    Fixture that provides an isolated, in-memory SQLite session for each test.
    Tables are created before and dropped after the test.
    """
    async with TestAsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
async def async_client(create_tables, settings):
    """
    Async HTTP client fixture with test database and settings overrides.
    Tests may replace `settings` by overriding the fixture or mutate
    app.dependency_overrides before issuing requests.
    """
    from main import app
    from dependencies import get_settings

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Cleanup: remove dependency overrides
    app.dependency_overrides.clear()


# ============================================================================
# In-memory stand-in for the Firestore AsyncClient
# ============================================================================
class FakeSnapshot:
    def __init__(self, data):
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, db, path):
        self.db = db
        self.path = path

    def collection(self, name):
        return FakeCollection(self.db, self.path + (name,))

    def _resolve(self, data):
        now = datetime.now(timezone.utc)
        return {k: (now if v is firestore.SERVER_TIMESTAMP else v) for k, v in data.items()}

    async def get(self):
        self.db.check()
        return FakeSnapshot(self.db.docs.get(self.path))

    async def set(self, data, merge=False):
        self.db.check()
        if merge and self.path in self.db.docs:
            self.db.docs[self.path].update(self._resolve(data))
        else:
            self.db.docs[self.path] = self._resolve(data)

    async def create(self, data):
        self.db.check()
        if self.path in self.db.docs:
            raise gexc.AlreadyExists("Document already exists")
        self.db.docs[self.path] = self._resolve(data)

    async def update(self, data):
        self.db.check()
        if self.path not in self.db.docs:
            raise gexc.NotFound("No document to update")
        self.db.docs[self.path].update(self._resolve(data))


class FakeCollection:
    def __init__(self, db, path):
        self.db = db
        self.path = path

    def document(self, name):
        return FakeDocument(self.db, self.path + (name,))


class FakeFirestoreClient:
    def __init__(self):
        self.docs = {}
        self.unavailable = False

    def check(self):
        if self.unavailable:
            raise gexc.ServiceUnavailable("Firestore is unavailable")

    def collection(self, name):
        return FakeCollection(self, (name,))


@pytest.fixture
def fake_firestore():
    return FakeFirestoreClient()
