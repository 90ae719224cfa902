from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dependencies import get_recaptcha_verifier
from exceptions import SubscriptionBackendError
from models.subscription import RecaptchaRequest
from services.recaptcha_service import RecaptchaVerifier

recaptcha_router = APIRouter(tags=["recaptcha"])


@recaptcha_router.post("/verify-recaptcha")
async def verify_recaptcha(
    body: RecaptchaRequest,
    verifier: RecaptchaVerifier = Depends(get_recaptcha_verifier),
):
    """
    Verify a client reCAPTCHA token.
    Answers in the {"success": ..., "error": ...} shape the frontend widget expects.
    """
    try:
        result = await verifier.verify(body.token)
    except SubscriptionBackendError as e:
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.message})

    if result.success:
        return {"success": True, "score": result.score}
    return {"success": False, "error": result.error_codes}
