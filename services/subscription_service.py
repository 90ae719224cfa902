"""
Subscription Service - record lookup and creation policies
"""

import logging
from typing import Optional

from config.settings import Settings, POLICY_NOT_FOUND, POLICY_OVERWRITE
from exceptions import InvalidInput, NotFound
from models.subscription import SubscriptionRecord

logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Applies tenancy and record policies on top of a subscription store.
    The store is either SubscriptionRepository or FirestoreSubscriptionStore.
    """

    def __init__(self, store, settings: Settings):
        """
        Args:
            store: subscription store handle for the configured backend
            settings: application settings (tenancy and policy switches)
        """
        self.store = store
        self.settings = settings

    def resolve_app_id(self, app_id: Optional[str]) -> str:
        """
        Return the tenant id for a request.
        Multi-tenant deployments require it; single-tenant ones use the default.
        """
        if app_id:
            return app_id
        if self.settings.multi_tenant:
            raise InvalidInput("App ID is required.")
        return self.settings.default_app_id

    async def get_status(self, app_id: Optional[str], user_id: str) -> bool:
        if not user_id:
            raise InvalidInput("User ID is required.")
        app_id = self.resolve_app_id(app_id)

        record = await self.store.get_record(app_id, user_id)
        if record is None:
            if self.settings.missing_user_policy == POLICY_NOT_FOUND:
                raise NotFound("User not found")
            record = await self.store.provision_user(app_id, user_id)
        return bool(record.is_subscribed)

    async def create_user(self, app_id: Optional[str], user_id: Optional[str], email: Optional[str]) -> SubscriptionRecord:
        """
        Create a user, overwriting an existing one under the overwrite policy.

        Overwriting resets is_subscribed to False.
        """
        if not user_id or not email:
            raise InvalidInput("User ID and email are required.")
        app_id = self.resolve_app_id(app_id)
        overwrite = self.settings.user_create_policy == POLICY_OVERWRITE
        record = await self.store.create_user(app_id, user_id, email, overwrite=overwrite)
        logger.info(f"User {user_id} created for app {app_id} (policy={self.settings.user_create_policy})")
        return record

    async def update_subscription(self, app_id: Optional[str], user_id: str, is_subscribed: bool) -> None:
        """Manual flag update. Subscriptions are never revoked."""
        if not user_id:
            raise InvalidInput("User ID is required.")
        app_id = self.resolve_app_id(app_id)

        record = await self.store.get_record(app_id, user_id)
        if record is None:
            raise NotFound("User not found")
        if record.is_subscribed and not is_subscribed:
            raise InvalidInput("Subscriptions cannot be revoked.")

        if not await self.store.set_subscribed(app_id, user_id, is_subscribed):
            raise NotFound("User not found")
        logger.info(f"User {user_id} subscription flag set to {is_subscribed} for app {app_id}")
