"""
Webhook Service - turns verified Stripe events into subscription updates
"""

import logging
from typing import Any, Optional

import stripe

from config.settings import Settings
from exceptions import StorageUnavailable
from models.events import (
    CHECKOUT_SESSION_COMPLETED,
    CheckoutSessionCompleted,
    MalformedEvent,
    UnhandledEvent,
    WebhookEvent,
)

logger = logging.getLogger(__name__)


def _field(obj: Optional[stripe.StripeObject], name: str) -> Any:
    # StripeObject raises AttributeError for absent keys
    if obj is None:
        return None
    return getattr(obj, name, None)


def parse_event(event: stripe.Event, settings: Settings) -> WebhookEvent:
    """
    Map a verified event onto one of the typed variants.

    Missing metadata yields MalformedEvent rather than an exception, so a
    broken event is acknowledged and never mutates state.
    """
    event_type = _field(event, "type") or ""
    event_id = _field(event, "id")

    if event_type != CHECKOUT_SESSION_COMPLETED:
        return UnhandledEvent(event_type=event_type, event_id=event_id)

    session = _field(_field(event, "data"), "object")
    metadata = _field(session, "metadata")
    user_id = _field(metadata, "userId")
    app_id = _field(metadata, "appId")
    session_id = _field(session, "id")

    if not user_id:
        return MalformedEvent(event_type=event_type, event_id=event_id, reason="userId not found in session metadata")
    if not app_id:
        if settings.multi_tenant:
            return MalformedEvent(event_type=event_type, event_id=event_id, reason="appId not found in session metadata")
        app_id = settings.default_app_id
    if not session_id:
        return MalformedEvent(event_type=event_type, event_id=event_id, reason="session id missing")

    return CheckoutSessionCompleted(
        event_id=event_id,
        session_id=session_id,
        user_id=user_id,
        app_id=app_id,
        payment_status=_field(session, "payment_status"),
    )


class WebhookService:
    """
    Applies verified payment events to the subscription store.
    Persistence failures are logged, not raised: the caller acknowledges the
    event to Stripe whatever happens here.
    """

    def __init__(self, store, settings: Settings):
        self.store = store
        self.settings = settings

    async def process_event(self, event: stripe.Event) -> WebhookEvent:
        parsed = parse_event(event, self.settings)

        if isinstance(parsed, UnhandledEvent):
            logger.info(f"Unhandled event type {parsed.event_type}")
        elif isinstance(parsed, MalformedEvent):
            logger.error(f"Error: {parsed.reason} (event {parsed.event_id}, type {parsed.event_type})")
        else:
            logger.info(f"Checkout session completed for session ID: {parsed.session_id}")
            await self.handle_checkout_session_completed(parsed)
        return parsed

    async def handle_checkout_session_completed(self, event: CheckoutSessionCompleted) -> bool:
        """
        Mark the user from the session metadata as subscribed.

        Returns:
            True if a record was updated
        """
        try:
            return await self.store.mark_subscribed(event.app_id, event.user_id, event.session_id)
        except StorageUnavailable as e:
            logger.error(
                f"Error updating subscription for user {event.user_id} (app {event.app_id}, "
                f"session {event.session_id}): {e}"
            )
            return False
