"""Turnstile token gate.

Decides whether a request may proceed based on its ``X-Turnstile-Token``
header, using a cache-aside strategy:

    token missing              -> REJECT_MISSING
    cache HIT                  -> ALLOW (no upstream call)
    cache MISS / UNAVAILABLE   -> verify upstream
        VALID                  -> store in cache, ALLOW
        INVALID / CALL_FAILED  -> REJECT_INVALID

When the gate is disabled (no secret or no Redis URL configured) every
request is allowed without inspection.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from errors import TokenInvalidError, TokenMissingError
from infrastructure.cache.token_cache import CacheLookup, TokenCache
from infrastructure.captcha.protocol import CaptchaVerifier, VerificationOutcome
from shared.ip_utils import normalize_headers, resolve_client_ip
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

TOKEN_HEADER = "x-turnstile-token"


class GateDecision(str, Enum):
    ALLOW = "allow"
    REJECT_MISSING = "reject_missing"
    REJECT_INVALID = "reject_invalid"


class AllowedVia(str, Enum):
    DISABLED = "disabled"
    CACHE = "cache"
    EXEMPT = "exempt"
    VERIFIED = "verified"


# Cache lookups that require an upstream verification
MUST_VERIFY = frozenset({CacheLookup.MISS, CacheLookup.UNAVAILABLE})

OUTCOME_DECISIONS: dict[VerificationOutcome, GateDecision] = {
    VerificationOutcome.VALID: GateDecision.ALLOW,
    VerificationOutcome.INVALID: GateDecision.REJECT_INVALID,
    VerificationOutcome.CALL_FAILED: GateDecision.REJECT_INVALID,
}


@dataclass(frozen=True)
class GateResult:
    decision: GateDecision
    via: Optional[AllowedVia] = None

    @property
    def allowed(self) -> bool:
        return self.decision is GateDecision.ALLOW


class TokenGate:
    def __init__(
        self,
        cache: Optional[TokenCache],
        verifier: Optional[CaptchaVerifier],
    ) -> None:
        self._cache = cache
        self._verifier = verifier

    @property
    def enabled(self) -> bool:
        return self._cache is not None and self._verifier is not None

    async def evaluate(
        self, headers: Mapping[str, str], platform_ip: Optional[str] = None
    ) -> GateResult:
        if not self.enabled:
            return GateResult(GateDecision.ALLOW, AllowedVia.DISABLED)

        headers = normalize_headers(headers)
        token = headers.get(TOKEN_HEADER)
        if not token:
            log.info("turnstile_token_missing")
            return GateResult(GateDecision.REJECT_MISSING)

        lookup = await self._cache.lookup(token)
        if lookup not in MUST_VERIFY:
            log.debug("turnstile_cache_hit")
            return GateResult(GateDecision.ALLOW, AllowedVia.CACHE)

        remote_ip = resolve_client_ip(headers, platform_ip)
        outcome = await self._verifier.verify(token, remote_ip)
        decision = OUTCOME_DECISIONS[outcome]

        if decision is not GateDecision.ALLOW:
            log.warning(
                "turnstile_token_rejected",
                outcome=outcome.value,
                cache=lookup.value,
                ip_hash=hash_ip(remote_ip),
            )
            return GateResult(decision)

        stored = await self._cache.store(token)
        log.info("turnstile_token_verified", cached=stored, cache=lookup.value)
        return GateResult(GateDecision.ALLOW, AllowedVia.VERIFIED)

    async def enforce(
        self, headers: Mapping[str, str], platform_ip: Optional[str] = None
    ) -> GateResult:
        """Like evaluate(), but raises the matching 401 error on rejection."""
        result = await self.evaluate(headers, platform_ip)
        if result.decision is GateDecision.REJECT_MISSING:
            raise TokenMissingError()
        if result.decision is GateDecision.REJECT_INVALID:
            raise TokenInvalidError()
        return result
