"""
FastAPI dependency providers.
Every handle a route needs comes from here so tests can override it.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings as app_settings, Settings, STORE_FIRESTORE
from crud.firestore_subscription import FirestoreSubscriptionStore
from crud.subscription import SubscriptionRepository
from database import get_db
from exceptions import Unauthorized
from services.recaptcha_service import RecaptchaVerifier
from services.stripe_service import StripeGateway
from services.subscription_service import SubscriptionService
from services.webhook_service import WebhookService


def get_settings() -> Settings:
    return app_settings


def get_subscription_store(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if settings.store_backend == STORE_FIRESTORE:
        return FirestoreSubscriptionStore(request.app.state.firestore)
    return SubscriptionRepository(db)


def get_subscription_service(
    store=Depends(get_subscription_store),
    settings: Settings = Depends(get_settings),
) -> SubscriptionService:
    return SubscriptionService(store, settings)


def get_webhook_service(
    store=Depends(get_subscription_store),
    settings: Settings = Depends(get_settings),
) -> WebhookService:
    return WebhookService(store, settings)


def get_stripe_gateway(settings: Settings = Depends(get_settings)) -> StripeGateway:
    return StripeGateway(settings)


def get_recaptcha_verifier(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> RecaptchaVerifier:
    return RecaptchaVerifier(request.app.state.http_client, settings)


def require_admin_token(
    x_admin_token: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Only enforced when ADMIN_API_TOKEN is configured."""
    if settings.admin_api_token and x_admin_token != settings.admin_api_token:
        raise Unauthorized("Invalid admin token")
