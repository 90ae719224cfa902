"""
Firestore-backed subscription store.

Records live at artifacts/{appId}/users/{userId}/subscriptions/status with
camelCase fields, the layout used by the hosted frontend. Operations mirror
SubscriptionRepository so the service layer is storage agnostic.
"""

import json
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.api_core import exceptions as gexc
from google.cloud import firestore

from config.settings import Settings
from exceptions import AlreadyExists, StorageUnavailable
from models.subscription import SubscriptionRecord

logger = logging.getLogger(__name__)


def init_firebase_app(settings: Settings) -> firebase_admin.App:
    """
    Initialize (or reuse) the default Firebase app.

    Credentials come from FIREBASE_SERVICE_ACCOUNT_KEY_JSON, then
    FIREBASE_SERVICE_ACCOUNT_KEY_PATH, then Application Default Credentials.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if settings.firebase_service_account_key_json:
        cred = credentials.Certificate(json.loads(settings.firebase_service_account_key_json))
    elif settings.firebase_service_account_key_path:
        cred = credentials.Certificate(settings.firebase_service_account_key_path)
    else:
        cred = None

    app = firebase_admin.initialize_app(cred) if cred else firebase_admin.initialize_app()
    logger.info("Firebase Admin SDK initialized successfully.")
    return app


def create_firestore_client(app: firebase_admin.App):
    return firestore_async.client(app)


def _to_record(app_id: str, user_id: str, data: dict) -> SubscriptionRecord:
    return SubscriptionRecord(
        app_id=app_id,
        user_id=user_id,
        email=data.get("email"),
        is_subscribed=bool(data.get("isSubscribed", False)),
        payment_status=data.get("paymentStatus"),
        last_payment_date=data.get("lastPaymentDate"),
        stripe_session_id=data.get("stripeSessionId"),
    )


def _new_document(email: Optional[str]) -> dict:
    return {
        "email": email,
        "isSubscribed": False,
        "paymentStatus": None,
        "lastPaymentDate": None,
        "stripeSessionId": None,
    }


class FirestoreSubscriptionStore:
    def __init__(self, client):
        self.client = client

    def _status_ref(self, app_id: str, user_id: str):
        return (
            self.client.collection("artifacts")
            .document(app_id)
            .collection("users")
            .document(user_id)
            .collection("subscriptions")
            .document("status")
        )

    async def get_record(self, app_id: str, user_id: str) -> Optional[SubscriptionRecord]:
        try:
            snapshot = await self._status_ref(app_id, user_id).get()
        except gexc.GoogleAPICallError as e:
            logger.error(f"Error reading Firestore for user {user_id} (app {app_id}): {e}")
            raise StorageUnavailable("Firestore error") from e
        if not snapshot.exists:
            return None
        return _to_record(app_id, user_id, snapshot.to_dict() or {})

    async def provision_user(self, app_id: str, user_id: str) -> SubscriptionRecord:
        try:
            await self._status_ref(app_id, user_id).create(_new_document(None))
        except gexc.Conflict:
            logger.info(f"User {user_id} (app {app_id}) was created concurrently; reading it back")
            existing = await self.get_record(app_id, user_id)
            if existing is None:
                raise StorageUnavailable("Firestore error")
            return existing
        except gexc.GoogleAPICallError as e:
            logger.error(f"Error provisioning user {user_id} (app {app_id}) in Firestore: {e}")
            raise StorageUnavailable("Firestore error") from e
        logger.info(f"Provisioned unsubscribed user {user_id} (app {app_id})")
        return SubscriptionRecord(app_id=app_id, user_id=user_id)

    async def create_user(self, app_id: str, user_id: str, email: str, overwrite: bool = True) -> SubscriptionRecord:
        ref = self._status_ref(app_id, user_id)
        try:
            if overwrite:
                await ref.set(_new_document(email))
            else:
                await ref.create(_new_document(email))
        except gexc.Conflict as e:
            logger.warning(f"User {user_id} (app {app_id}) already exists")
            raise AlreadyExists(f"User {user_id} already exists") from e
        except gexc.GoogleAPICallError as e:
            logger.error(f"Error creating user {user_id} (app {app_id}) in Firestore: {e}")
            raise StorageUnavailable("Firestore error") from e
        return SubscriptionRecord(app_id=app_id, user_id=user_id, email=email)

    async def mark_subscribed(
        self,
        app_id: str,
        user_id: str,
        session_id: str,
        payment_status: str = "paid",
    ) -> bool:
        # update() merges into the existing document and fails if it is missing
        try:
            await self._status_ref(app_id, user_id).update({
                "isSubscribed": True,
                "paymentStatus": payment_status,
                "lastPaymentDate": firestore.SERVER_TIMESTAMP,
                "stripeSessionId": session_id,
            })
        except gexc.NotFound:
            logger.warning(f"User {user_id} not found in Firestore for app {app_id}; payment update skipped.")
            return False
        except gexc.GoogleAPICallError as e:
            logger.error(f"Error updating Firestore for user {user_id} (app {app_id}): {e}")
            raise StorageUnavailable("Firestore error") from e
        logger.info(f"User {user_id} subscription status updated to True in Firestore for app {app_id}.")
        return True

    async def set_subscribed(self, app_id: str, user_id: str, is_subscribed: bool) -> bool:
        try:
            await self._status_ref(app_id, user_id).update({"isSubscribed": is_subscribed})
        except gexc.NotFound:
            return False
        except gexc.GoogleAPICallError as e:
            logger.error(f"Error updating Firestore for user {user_id} (app {app_id}): {e}")
            raise StorageUnavailable("Firestore error") from e
        return True
