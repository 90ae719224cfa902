"""
Unit tests for SubscriptionRepository operations
"""
import pytest
from sqlalchemy.exc import OperationalError

from crud.subscription import SubscriptionRepository
from database import to_async_url
from exceptions import AlreadyExists, StorageUnavailable
from tests.conftest import TestAsyncSessionLocal, test_engine


@pytest.mark.asyncio
async def test_create_and_get_record(test_db):
    repo = SubscriptionRepository(test_db)

    created = await repo.create_user("default", "u1", "a@b.com")
    assert created.user_id == "u1"
    assert created.is_subscribed is False

    record = await repo.get_record("default", "u1")
    assert record is not None
    assert record.email == "a@b.com"
    assert record.is_subscribed is False
    assert record.payment_status is None


@pytest.mark.asyncio
async def test_records_are_scoped_per_app(test_db):
    repo = SubscriptionRepository(test_db)
    await repo.create_user("app-a", "u1", "a@b.com")

    assert await repo.get_record("app-b", "u1") is None
    assert await repo.mark_subscribed("app-b", "u1", "cs_1") is False

    record = await repo.get_record("app-a", "u1")
    assert record.is_subscribed is False


@pytest.mark.asyncio
async def test_mark_subscribed_merges_payment_fields(test_db):
    """
    Payment completion sets the flag and payment metadata while keeping the email.
    """
    repo = SubscriptionRepository(test_db)
    await repo.create_user("default", "u1", "a@b.com")

    assert await repo.mark_subscribed("default", "u1", "cs_test_1") is True

    record = await repo.get_record("default", "u1")
    assert record.is_subscribed is True
    assert record.payment_status == "paid"
    assert record.stripe_session_id == "cs_test_1"
    assert record.last_payment_date is not None
    assert record.email == "a@b.com"


@pytest.mark.asyncio
async def test_mark_subscribed_is_idempotent(test_db):
    repo = SubscriptionRepository(test_db)
    await repo.create_user("default", "u1", "a@b.com")

    assert await repo.mark_subscribed("default", "u1", "cs_test_1") is True
    assert await repo.mark_subscribed("default", "u1", "cs_test_1") is True

    record = await repo.get_record("default", "u1")
    assert record.is_subscribed is True
    assert record.stripe_session_id == "cs_test_1"


@pytest.mark.asyncio
async def test_mark_subscribed_unknown_user_is_noop(test_db):
    repo = SubscriptionRepository(test_db)

    assert await repo.mark_subscribed("default", "ghost", "cs_test_1") is False
    assert await repo.get_record("default", "ghost") is None


@pytest.mark.asyncio
async def test_create_user_overwrite_resets_subscription(test_db):
    repo = SubscriptionRepository(test_db)
    await repo.create_user("default", "u1", "a@b.com")
    await repo.mark_subscribed("default", "u1", "cs_test_1")

    await repo.create_user("default", "u1", "new@b.com", overwrite=True)

    record = await repo.get_record("default", "u1")
    assert record.email == "new@b.com"
    assert record.is_subscribed is False
    assert record.stripe_session_id is None


@pytest.mark.asyncio
async def test_create_user_reject_keeps_existing_record(test_db):
    repo = SubscriptionRepository(test_db)
    await repo.create_user("default", "u1", "a@b.com")
    await repo.mark_subscribed("default", "u1", "cs_test_1")

    with pytest.raises(AlreadyExists):
        await repo.create_user("default", "u1", "other@b.com", overwrite=False)

    record = await repo.get_record("default", "u1")
    assert record.email == "a@b.com"
    assert record.is_subscribed is True


@pytest.mark.asyncio
async def test_provision_user_creates_unsubscribed_record(test_db):
    repo = SubscriptionRepository(test_db)

    record = await repo.provision_user("default", "u-new")
    assert record.is_subscribed is False
    assert record.email is None

    stored = await repo.get_record("default", "u-new")
    assert stored is not None


@pytest.mark.asyncio
async def test_provision_user_returns_existing_on_conflict(test_db):
    repo = SubscriptionRepository(test_db)
    await repo.create_user("default", "u1", "a@b.com")
    await repo.mark_subscribed("default", "u1", "cs_test_1")

    record = await repo.provision_user("default", "u1")
    assert record.is_subscribed is True
    assert record.email == "a@b.com"


@pytest.mark.asyncio
async def test_set_subscribed(test_db):
    repo = SubscriptionRepository(test_db)
    await repo.create_user("default", "u1", "a@b.com")

    assert await repo.set_subscribed("default", "u1", True) is True
    assert (await repo.get_record("default", "u1")).is_subscribed is True
    assert await repo.set_subscribed("default", "missing", True) is False


@pytest.mark.asyncio
async def test_missing_table_raises_storage_unavailable():
    """
    Without tables every query fails at the driver; the repository reports
    StorageUnavailable instead of leaking SQLAlchemy errors.
    """
    async with TestAsyncSessionLocal() as session:
        repo = SubscriptionRepository(session)
        with pytest.raises(StorageUnavailable) as exc_info:
            await repo.get_record("default", "u1")
        assert isinstance(exc_info.value.__cause__, OperationalError)

        with pytest.raises(StorageUnavailable):
            await repo.mark_subscribed("default", "u1", "cs_test_1")
    await test_engine.dispose()


def test_postgres_urls_use_asyncpg_driver():
    assert to_async_url("postgres://u:p@host:5432/db") == "postgresql+asyncpg://u:p@host:5432/db"
    assert to_async_url("postgresql://u:p@host/db") == "postgresql+asyncpg://u:p@host/db"
    assert to_async_url("postgresql+asyncpg://u:p@host/db") == "postgresql+asyncpg://u:p@host/db"
    assert to_async_url("sqlite+aiosqlite:///./x.db") == "sqlite+aiosqlite:///./x.db"
