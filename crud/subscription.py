"""
SubscriptionRepository for relational storage of subscription records
"""

import logging
from typing import Optional
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import User
from exceptions import AlreadyExists, StorageUnavailable
from models.subscription import SubscriptionRecord

logger = logging.getLogger(__name__)


def _to_record(user: User) -> SubscriptionRecord:
    return SubscriptionRecord(
        app_id=user.app_id,
        user_id=user.id,
        email=user.email,
        is_subscribed=bool(user.is_subscribed),
        payment_status=user.payment_status,
        last_payment_date=user.last_payment_date,
        stripe_session_id=user.stripe_session_id,
    )


class SubscriptionRepository:
    """
    Repository class for subscription records stored in the users table.
    Write operations commit their own transaction so the outcome is known
    before the HTTP response is built.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def _get_user(self, app_id: str, user_id: str) -> Optional[User]:
        # populate_existing so rows changed by bulk UPDATEs are re-read
        result = await self.db.execute(
            select(User)
            .where(User.app_id == app_id, User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_record(self, app_id: str, user_id: str) -> Optional[SubscriptionRecord]:
        """
        Retrieve a subscription record.

        Returns:
            SubscriptionRecord if found, None otherwise
        """
        try:
            user = await self._get_user(app_id, user_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error fetching subscription status for user {user_id} (app {app_id}): {e}")
            raise StorageUnavailable("Database error") from e
        return _to_record(user) if user else None

    async def provision_user(self, app_id: str, user_id: str) -> SubscriptionRecord:
        """
        Insert an unsubscribed record for a user seen for the first time.
        A concurrent insert of the same key is absorbed by reading the winner back.
        """
        user = User(app_id=app_id, id=user_id, email=None, is_subscribed=False)
        try:
            existing = await self._get_user(app_id, user_id)
            if existing is not None:
                return _to_record(existing)
            self.db.add(user)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"User {user_id} (app {app_id}) was created concurrently; reading it back")
            existing = await self.get_record(app_id, user_id)
            if existing is None:
                raise StorageUnavailable("Database error")
            return existing
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error provisioning user {user_id} (app {app_id}): {e}")
            raise StorageUnavailable("Database error") from e
        logger.info(f"Provisioned unsubscribed user {user_id} (app {app_id})")
        return _to_record(user)

    async def create_user(self, app_id: str, user_id: str, email: str, overwrite: bool = True) -> SubscriptionRecord:
        """
        Create a user record.

        Args:
            overwrite: replace an existing record (resetting is_subscribed and
                payment fields) instead of raising AlreadyExists

        Returns:
            The stored SubscriptionRecord
        """
        try:
            existing = await self._get_user(app_id, user_id)
            if existing is not None and not overwrite:
                raise AlreadyExists(f"User {user_id} already exists")
            if existing is not None:
                existing.email = email
                existing.is_subscribed = False
                existing.payment_status = None
                existing.last_payment_date = None
                existing.stripe_session_id = None
                user = existing
            else:
                user = User(app_id=app_id, id=user_id, email=email, is_subscribed=False)
                self.db.add(user)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"User {user_id} (app {app_id}) already exists")
            raise AlreadyExists(f"User {user_id} already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error creating user {user_id} (app {app_id}): {e}")
            raise StorageUnavailable("Database error") from e
        return _to_record(user)

    async def mark_subscribed(
        self,
        app_id: str,
        user_id: str,
        session_id: str,
        payment_status: str = "paid",
    ) -> bool:
        """
        Record a completed payment. Email and creation time are left untouched.

        Returns:
            True if a record was updated, False if no record matched
        """
        try:
            result = await self.db.execute(
                update(User)
                .where(User.app_id == app_id, User.id == user_id)
                .values(
                    is_subscribed=True,
                    payment_status=payment_status,
                    last_payment_date=func.now(),
                    stripe_session_id=session_id,
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error updating subscription status for user {user_id} (app {app_id}): {e}")
            raise StorageUnavailable("Database error") from e

        if result.rowcount > 0:
            logger.info(f"User {user_id} subscription status updated to True for app {app_id}.")
            return True
        logger.warning(f"User {user_id} not found for app {app_id}; payment update skipped.")
        return False

    async def set_subscribed(self, app_id: str, user_id: str, is_subscribed: bool) -> bool:
        """
        Set only the is_subscribed flag.

        Returns:
            True if a record was updated, False if no record matched
        """
        try:
            result = await self.db.execute(
                update(User)
                .where(User.app_id == app_id, User.id == user_id)
                .values(is_subscribed=is_subscribed)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error updating subscription status for user {user_id} (app {app_id}): {e}")
            raise StorageUnavailable("Database error") from e
        return result.rowcount > 0
