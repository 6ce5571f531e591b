"""CaptchaVerifier protocol: the gate depends on this, not the concrete implementation."""

from enum import Enum
from typing import Optional, Protocol


class VerificationOutcome(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    CALL_FAILED = "call_failed"


class CaptchaVerifier(Protocol):
    async def verify(
        self, token: str, remote_ip: Optional[str] = None
    ) -> VerificationOutcome: ...
