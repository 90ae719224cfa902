"""
Subscription Gate Backend
Stripe Checkout + webhooks, subscription records in SQL or Firestore, reCAPTCHA verification
"""

import logging
import traceback

import firebase_admin
import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from config.settings import settings, LOGS_DIR, STORE_FIRESTORE
from crud.firestore_subscription import init_firebase_app, create_firestore_client
from database import init_db, dispose_engine
from exceptions import SubscriptionBackendError

# Routers
from routers.billing_router import billing_router
from routers.users_router import users_router
from routers.recaptcha_router import recaptcha_router

# Logging setup - write ALL events to {LOG_DIR}/app.log
LOGS_DIR.mkdir(parents=True, exist_ok=True)
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

from backend.utils.responses import error_response, exception_response  # noqa: E402

# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(title="Subscription Gate Backend")


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"ok": False, "data": {}, "error": "internal_error", "message": "Internal Server Error"}
            )


app.add_middleware(UncaughtExceptionMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url] if settings.frontend_url else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================
@app.exception_handler(SubscriptionBackendError)
async def subscription_error_handler(request: Request, exc: SubscriptionBackendError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} failed: {exc.error_code} - {exc.message}")
    return exception_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"{request.method} {request.url.path} rejected: {exc.errors()}")
    return error_response("invalid_input", status=400, message="Missing or invalid request fields")


# ============================================================================
# STARTUP / SHUTDOWN
# ============================================================================
REQUIRED_KEY_MAP = {
    "STRIPE_SECRET_KEY": settings.stripe_secret_key,
    "STRIPE_WEBHOOK_SECRET": settings.stripe_webhook_secret,
    "RECAPTCHA_SECRET_KEY": settings.recaptcha_secret_key if settings.recaptcha_configured else None,
}


@app.on_event("startup")
async def check_env_keys_on_startup():
    """Check for missing environment variables on startup (non-fatal warning)"""
    missing = [key for key, value in REQUIRED_KEY_MAP.items() if not value]
    if missing:
        logger.warning(f"Startup check: Missing environment variables: {', '.join(missing)}")
    else:
        logger.info("Startup check: All critical environment variables are set")


@app.on_event("startup")
async def open_clients():
    """Create the process-wide handles that dependencies hand out."""
    app.state.http_client = httpx.AsyncClient(timeout=settings.recaptcha_timeout_seconds)

    if settings.store_backend == STORE_FIRESTORE:
        try:
            app.state.firebase_app = init_firebase_app(settings)
            app.state.firestore = create_firestore_client(app.state.firebase_app)
        except Exception as e:
            logger.error(f"Error initializing Firebase Admin SDK: {e}")
            raise
    else:
        try:
            await init_db()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    logger.info(f"CORS enabled for: {settings.frontend_url}")


@app.on_event("shutdown")
async def close_clients():
    http_client = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()

    firebase_app = getattr(app.state, "firebase_app", None)
    if firebase_app is not None:
        firebase_admin.delete_app(firebase_app)

    await dispose_engine()


# ============================================================================
# ROUTES
# ============================================================================
@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Stripe Backend is running!"


app.include_router(billing_router)
app.include_router(users_router)
app.include_router(recaptcha_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
