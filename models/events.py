"""
Typed variants of verified Stripe webhook events.
Metadata is validated here so handlers never touch the raw payload.
"""
from typing import Optional, Union
from pydantic import BaseModel

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


class CheckoutSessionCompleted(BaseModel):
    event_id: Optional[str] = None
    session_id: str
    user_id: str
    app_id: str
    payment_status: Optional[str] = None


class MalformedEvent(BaseModel):
    """A recognised event whose metadata cannot identify a user."""
    event_type: str
    event_id: Optional[str] = None
    reason: str


class UnhandledEvent(BaseModel):
    event_type: str
    event_id: Optional[str] = None


WebhookEvent = Union[CheckoutSessionCompleted, MalformedEvent, UnhandledEvent]
