"""
Stripe gateway - checkout session creation and webhook verification
"""

import logging
from typing import Optional
import stripe

from config.settings import Settings
from exceptions import UpstreamServiceError, UpstreamVerificationFailed

logger = logging.getLogger(__name__)


class StripeGateway:
    """
    Thin wrapper over the Stripe SDK.
    The API key is passed per call instead of being set on the stripe module.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def _line_item(self) -> dict:
        if self.settings.stripe_price_id:
            return {"price": self.settings.stripe_price_id, "quantity": 1}
        return {
            "price_data": {
                "currency": self.settings.checkout_currency,
                "product_data": {
                    "name": self.settings.checkout_product_name,
                    "description": self.settings.checkout_product_description,
                },
                "unit_amount": self.settings.checkout_unit_amount,
            },
            "quantity": 1,
        }

    def create_checkout_session(self, user_id: str, app_id: str) -> str:
        """
        Create a one-off payment Checkout session for a user.

        The user and app ids travel in the session metadata and come back in
        the checkout.session.completed webhook.

        Returns:
            Stripe checkout session id
        """
        if not self.settings.stripe_secret_key:
            logger.error("STRIPE_SECRET_KEY is not set. Cannot create checkout session.")
            raise UpstreamServiceError("STRIPE_SECRET_KEY is not set. Cannot create checkout session.")

        frontend_url = self.settings.frontend_url or ""
        try:
            checkout_session = stripe.checkout.Session.create(
                api_key=self.settings.stripe_secret_key,
                line_items=[self._line_item()],
                mode="payment",
                success_url=f"{frontend_url}?success=true",
                cancel_url=f"{frontend_url}?canceled=true",
                metadata={
                    "userId": user_id,
                    "appId": app_id,
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Error creating checkout session for user {user_id} (app {app_id}): {e}")
            raise UpstreamServiceError(str(e)) from e

        logger.info(f"Checkout session {checkout_session.id} created for user {user_id} (app {app_id})")
        return checkout_session.id

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> stripe.Event:
        """
        Verify a webhook delivery against STRIPE_WEBHOOK_SECRET.

        Args:
            payload: raw request body, byte for byte as received
            signature: value of the Stripe-Signature header

        Returns:
            Verified stripe.Event

        Raises:
            UpstreamVerificationFailed: missing header, bad signature or bad payload
            UpstreamServiceError: webhook secret not configured
        """
        if not self.settings.stripe_webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET environment variable is not set")
            raise UpstreamServiceError("Webhook secret not configured")

        if not signature:
            logger.error("Missing Stripe-Signature header")
            raise UpstreamVerificationFailed("Webhook Error: Missing signature header")

        try:
            return stripe.Webhook.construct_event(
                payload,
                signature,
                self.settings.stripe_webhook_secret,
            )
        except stripe.SignatureVerificationError as e:
            logger.error(f"Stripe webhook signature verification failed: {e}")
            raise UpstreamVerificationFailed(f"Webhook Error: {e}") from e
        except ValueError as e:
            logger.error(f"Invalid webhook payload: {e}")
            raise UpstreamVerificationFailed("Webhook Error: Invalid payload format") from e
