"""Cloudflare Turnstile implementation of CaptchaVerifier.

Posts the token (and the client IP when known) to the siteverify endpoint as
form data. Only a JSON object with ``"success": true`` counts as VALID; an
explicit ``false`` is INVALID; transport errors, non-2xx statuses and any
other body shape are CALL_FAILED.
"""

from typing import Optional

from config import TURNSTILE_VERIFY_URL
from infrastructure.captcha.protocol import VerificationOutcome
from infrastructure.http_client import HttpClient
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)


class TurnstileVerifier:
    def __init__(
        self,
        secret: str,
        http_client: HttpClient,
        verify_url: str = TURNSTILE_VERIFY_URL,
    ) -> None:
        self._secret = secret
        self._http = http_client
        self._verify_url = verify_url

    async def verify(
        self, token: str, remote_ip: Optional[str] = None
    ) -> VerificationOutcome:
        if not self._secret:
            log.warning("turnstile_secret_not_configured")
            return VerificationOutcome.INVALID

        form = {"secret": self._secret, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            response = await self._http.post(self._verify_url, data=form)
        except Exception as e:
            log.error(
                "turnstile_request_failed", error=str(e), error_type=type(e).__name__
            )
            return VerificationOutcome.CALL_FAILED

        if not 200 <= response.status_code < 300:
            log.error(
                "turnstile_api_error",
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            return VerificationOutcome.CALL_FAILED

        try:
            data = response.json()
        except ValueError as e:
            log.error("turnstile_response_not_json", error=str(e))
            return VerificationOutcome.CALL_FAILED

        if not isinstance(data, dict) or not isinstance(data.get("success"), bool):
            log.error("turnstile_response_malformed", body_type=type(data).__name__)
            return VerificationOutcome.CALL_FAILED

        if data["success"]:
            return VerificationOutcome.VALID

        log.warning(
            "turnstile_verification_failed",
            error_codes=data.get("error-codes", []),
            ip_hash=hash_ip(remote_ip),
        )
        return VerificationOutcome.INVALID
