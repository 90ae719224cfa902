"""
Configuration settings for the application
"""
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholder value shipped in the frontend template; treated as unset
RECAPTCHA_PLACEHOLDER = "YOUR_RECAPTCHA_SECRET_KEY"

STORE_SQL = "sql"
STORE_FIRESTORE = "firestore"

POLICY_PROVISION = "provision"
POLICY_NOT_FOUND = "not_found"
POLICY_OVERWRITE = "overwrite"
POLICY_REJECT = "reject"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,  # Allow both field name and alias
        extra="ignore",
    )

    # Stripe billing configuration
    stripe_secret_key: Optional[str] = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = Field(default=None, alias="STRIPE_WEBHOOK_SECRET")
    stripe_price_id: Optional[str] = Field(default=None, alias="STRIPE_PRICE_ID")

    # Checkout line item used when no STRIPE_PRICE_ID is configured
    checkout_currency: str = Field(default="usd", alias="CHECKOUT_CURRENCY")
    checkout_product_name: str = Field(default="Premium Content Subscription", alias="CHECKOUT_PRODUCT_NAME")
    checkout_product_description: str = Field(
        default="Access to exclusive gated content",
        alias="CHECKOUT_PRODUCT_DESCRIPTION",
    )
    checkout_unit_amount: int = Field(default=2000, alias="CHECKOUT_UNIT_AMOUNT")  # cents

    # reCAPTCHA
    recaptcha_secret_key: Optional[str] = Field(default=None, alias="RECAPTCHA_SECRET_KEY")
    recaptcha_verify_url: str = Field(
        default="https://www.google.com/recaptcha/api/siteverify",
        alias="RECAPTCHA_VERIFY_URL",
    )
    recaptcha_timeout_seconds: float = Field(default=10.0, alias="RECAPTCHA_TIMEOUT_SECONDS")

    # Frontend configuration (CORS origin and checkout redirect base)
    frontend_url: Optional[str] = Field(default="http://localhost:5175", alias="FRONTEND_URL")

    # Storage configuration
    store_backend: Literal["sql", "firestore"] = Field(default=STORE_SQL, alias="STORE_BACKEND")
    database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./warrior-built.db", alias="DATABASE_URL")
    firebase_service_account_key_json: Optional[str] = Field(default=None, alias="FIREBASE_SERVICE_ACCOUNT_KEY_JSON")
    firebase_service_account_key_path: Optional[str] = Field(default=None, alias="FIREBASE_SERVICE_ACCOUNT_KEY_PATH")

    # Tenancy and record policies
    multi_tenant: bool = Field(default=False, alias="MULTI_TENANT")
    default_app_id: str = Field(default="default", alias="DEFAULT_APP_ID")
    missing_user_policy: Literal["provision", "not_found"] = Field(
        default=POLICY_PROVISION, alias="MISSING_USER_POLICY"
    )
    user_create_policy: Literal["overwrite", "reject"] = Field(
        default=POLICY_OVERWRITE, alias="USER_CREATE_POLICY"
    )

    # Guards POST /users/{id}/subscription when set
    admin_api_token: Optional[str] = Field(default=None, alias="ADMIN_API_TOKEN")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="./logs", alias="LOG_DIR")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")
    render: Optional[str] = Field(default=None, alias="RENDER")

    @property
    def recaptcha_configured(self) -> bool:
        return bool(self.recaptcha_secret_key) and self.recaptcha_secret_key != RECAPTCHA_PLACEHOLDER


# Instantiate settings object
settings = Settings()

LOGS_DIR = Path(settings.log_dir)

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.render) or bool(settings.env and settings.env.lower() == "production")
