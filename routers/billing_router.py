"""
Billing Router - Stripe checkout and webhook endpoints
Webhook is defined FIRST and reads the raw body before any JSON parsing
"""

import logging

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse

from dependencies import get_stripe_gateway, get_subscription_service, get_webhook_service
from exceptions import InvalidInput
from models.subscription import CheckoutSessionRequest
from services.stripe_service import StripeGateway
from services.subscription_service import SubscriptionService
from services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

# Create billing router
billing_router = APIRouter(tags=["billing"])


# WEBHOOK ENDPOINT - MUST BE DEFINED FIRST TO AVOID MIDDLEWARE CONFLICTS
@billing_router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    gateway: StripeGateway = Depends(get_stripe_gateway),
    webhook_service: WebhookService = Depends(get_webhook_service),
):
    """
    Handle Stripe webhook events with signature verification.

    Unverified events are rejected with 400 and change nothing. Once an event
    is verified it is acknowledged with 200 whatever the persistence outcome,
    since Stripe retries every non-2xx delivery.
    """
    # Get raw request body (required for signature verification)
    payload = await request.body()
    stripe_signature = request.headers.get("stripe-signature")

    event = gateway.verify_webhook(payload, stripe_signature)
    try:
        await webhook_service.process_event(event)
    except Exception as e:
        # Return 200 to Stripe even on error to prevent retries
        logger.error(f"Error processing verified webhook event: {e}", exc_info=True)

    return JSONResponse(status_code=200, content={"received": True})


@billing_router.post("/create-checkout-session")
async def create_checkout_session(
    body: CheckoutSessionRequest,
    gateway: StripeGateway = Depends(get_stripe_gateway),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Create a Stripe Checkout session carrying userId/appId in its metadata.

    Returns:
        {"id": <checkout session id>}
    """
    if not body.user_id:
        raise InvalidInput("User ID is required.")
    app_id = subscription_service.resolve_app_id(body.app_id)

    session_id = gateway.create_checkout_session(body.user_id, app_id)
    return {"id": session_id}
