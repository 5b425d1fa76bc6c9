"""CSRF Token Service

Purpose: Issue and verify signed double-submit CSRF tokens

Token format:
    <token>.<issued_at>.<signature>

- token: 128 random bits, base64url
- issued_at: issuance time in epoch seconds
- signature: base64url(HMAC-SHA256(secret, "<token>.<issued_at>"))

Nothing is stored server side. Any replica holding the same secret can verify
any token; validity depends only on the signature and the token's age.

Flow:
1. Client fetches a token (GET /api/csrf-token); the signed token is set as a
   script-readable, SameSite=Strict cookie and returned in the body
2. Client echoes the same value in the X-CSRF-Token header on every
   state-changing request
3. Server checks header == cookie and that the signature and age are valid
"""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
# Tolerated clock skew between replicas for tokens stamped "in the future"
MAX_CLOCK_SKEW_SECONDS = 60


@dataclass(frozen=True)
class CsrfTokenPair:
    """Raw token and its signed, transportable form"""
    token: str
    signed_token: str


class CsrfTokenService:
    """Stateless HMAC-signed CSRF tokens

    Args:
        secret: Server-held signing secret
        ttl_seconds: Validity window
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("CSRF secret must be configured")
        self._secret = secret.encode("utf-8")
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def issue(self) -> CsrfTokenPair:
        """Generate a fresh signed token"""
        token = secrets.token_urlsafe(16)
        issued_at = int(self.clock())
        signature = self._sign(token, issued_at)
        return CsrfTokenPair(token=token, signed_token=f"{token}.{issued_at}.{signature}")

    def verify(self, signed_token: Optional[str], cookie_value: Optional[str]) -> bool:
        """Double-submit check: header token must equal the cookie and be valid

        Never raises; malformed, expired, tampered or mismatched input
        yields False.
        """
        if not isinstance(signed_token, str) or not isinstance(cookie_value, str):
            return False
        if not signed_token or not cookie_value:
            return False

        if not hmac.compare_digest(signed_token.encode("utf-8"), cookie_value.encode("utf-8")):
            return False

        return self.verify_signature(signed_token)

    def verify_signature(self, signed_token: Optional[str]) -> bool:
        """Check format, age and signature of a single signed token"""
        if not isinstance(signed_token, str):
            return False

        parts = signed_token.split(".")
        if len(parts) != 3:
            return False

        token, issued_at_raw, received_signature = parts
        if not token or not received_signature:
            return False
        if not issued_at_raw.isascii() or not issued_at_raw.isdigit():
            return False

        issued_at = int(issued_at_raw)
        age = int(self.clock()) - issued_at
        if age > self.ttl_seconds:
            logger.debug("CSRF token expired")
            return False
        if age < -MAX_CLOCK_SKEW_SECONDS:
            return False

        expected_signature = self._sign(token, issued_at)
        return hmac.compare_digest(
            expected_signature.encode("utf-8"), received_signature.encode("utf-8")
        )

    def _sign(self, token: str, issued_at: int) -> str:
        message = f"{token}.{issued_at}".encode("utf-8")
        digest = hmac.new(self._secret, message, hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
