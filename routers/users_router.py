"""
Users Router - subscription status lookup, manual update and user creation
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from backend.utils.responses import success_response
from dependencies import get_subscription_service, require_admin_token
from models.subscription import CreateUserRequest, SubscriptionUpdateRequest
from services.subscription_service import SubscriptionService

users_router = APIRouter(tags=["users"])


@users_router.get("/users/{user_id}/subscription")
async def get_subscription_status(
    user_id: str,
    app_id: Optional[str] = Query(default=None, alias="appId"),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Return {"isSubscribed": bool} for a user."""
    is_subscribed = await service.get_status(app_id, user_id)
    return {"isSubscribed": is_subscribed}


@users_router.post("/users/{user_id}/subscription", dependencies=[Depends(require_admin_token)])
async def update_subscription_status(
    user_id: str,
    body: SubscriptionUpdateRequest,
    app_id: Optional[str] = Query(default=None, alias="appId"),
    service: SubscriptionService = Depends(get_subscription_service),
):
    await service.update_subscription(app_id, user_id, body.is_subscribed)
    return PlainTextResponse("Subscription updated successfully")


@users_router.post("/users")
async def create_user(
    body: CreateUserRequest,
    app_id: Optional[str] = Query(default=None, alias="appId"),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Create a user with an unsubscribed record.

    With USER_CREATE_POLICY=overwrite an existing user is replaced and loses
    its subscription; with reject the call fails with 409.
    """
    record = await service.create_user(app_id, body.id, body.email)
    return success_response(
        data={"id": record.user_id, "appId": record.app_id},
        message="User created successfully",
    )
