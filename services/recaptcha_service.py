"""
reCAPTCHA verification against Google's siteverify endpoint
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from config.settings import Settings
from exceptions import InvalidInput, UpstreamServiceError

logger = logging.getLogger(__name__)


@dataclass
class RecaptchaResult:
    success: bool
    score: Optional[float] = None
    error_codes: List[str] = field(default_factory=list)


class RecaptchaVerifier:
    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        """
        Args:
            client: shared AsyncClient owned by the application lifecycle
            settings: provides the secret key and verify URL
        """
        self.client = client
        self.settings = settings

    async def verify(self, token: Optional[str]) -> RecaptchaResult:
        if not token:
            raise InvalidInput("reCAPTCHA token is missing.")
        if not self.settings.recaptcha_configured:
            logger.error("reCAPTCHA Secret Key not configured in backend.")
            raise UpstreamServiceError("Server reCAPTCHA configuration error.")

        try:
            response = await self.client.post(
                self.settings.recaptcha_verify_url,
                data={"secret": self.settings.recaptcha_secret_key, "response": token},
                timeout=self.settings.recaptcha_timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error verifying reCAPTCHA: {e}")
            raise UpstreamServiceError("Internal server error during reCAPTCHA verification.") from e

        logger.info(f"reCAPTCHA verification response: {data}")
        if data.get("success"):
            return RecaptchaResult(success=True, score=data.get("score"))
        return RecaptchaResult(success=False, error_codes=data.get("error-codes") or [])
