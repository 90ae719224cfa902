"""
Subscription record and request models
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class SubscriptionRecord(BaseModel):
    app_id: str
    user_id: str
    email: Optional[str] = None
    is_subscribed: bool = False
    payment_status: Optional[str] = None
    last_payment_date: Optional[datetime] = None
    stripe_session_id: Optional[str] = None


class CreateUserRequest(BaseModel):
    id: Optional[str] = None
    email: Optional[str] = None


class SubscriptionUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_subscribed: bool = Field(alias="isSubscribed")


class CheckoutSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    app_id: Optional[str] = Field(default=None, alias="appId")


class RecaptchaRequest(BaseModel):
    token: Optional[str] = None
