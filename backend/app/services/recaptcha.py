"""reCAPTCHA v3 token verification for the quote-intake endpoint.

Verification is skipped (with a warning) when no secret key is configured,
which keeps local development usable without Google credentials.
"""

import logging
from dataclasses import dataclass

import httpx

from app.config import settings
from app.middleware.exceptions import VerificationFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    skipped: bool
    score: float | None = None


async def verify_token(token: str | None, remote_ip: str | None = None) -> VerificationResult:
    """Check a token against the siteverify API.

    Raises VerificationFailedError when the token is missing, rejected,
    scored below `recaptcha_min_score` or issued for another action.
    """
    if not settings.recaptcha_secret_key:
        logger.warning("RECAPTCHA_SECRET_KEY not set; skipping bot verification")
        return VerificationResult(skipped=True)

    if not token:
        raise VerificationFailedError()

    form = {"secret": settings.recaptcha_secret_key, "response": token}
    if remote_ip:
        form["remoteip"] = remote_ip

    try:
        async with httpx.AsyncClient(timeout=settings.recaptcha_timeout_seconds) as client:
            resp = await client.post(settings.recaptcha_verify_url, data=form)
            resp.raise_for_status()
            body = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"reCAPTCHA verification request failed: {e}")
        raise VerificationFailedError()

    if not body.get("success"):
        logger.warning("reCAPTCHA rejected token: %s", body.get("error-codes"))
        raise VerificationFailedError()

    action = body.get("action")
    if action and action != settings.recaptcha_action:
        logger.warning("reCAPTCHA action mismatch: %s", action)
        raise VerificationFailedError()

    score = float(body.get("score", 0.0))
    if score < settings.recaptcha_min_score:
        logger.warning("reCAPTCHA score %.2f below threshold %.2f", score, settings.recaptcha_min_score)
        raise VerificationFailedError()

    return VerificationResult(skipped=False, score=score)
