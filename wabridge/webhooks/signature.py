"""
X-Hub-Signature-256 verification for inbound webhook requests.

Meta signs every POST with HMAC-SHA256 over the exact request bytes, keyed with
the app secret. The check must run on the raw body: re-serialising parsed JSON
is not guaranteed to reproduce the same bytes.
"""

import hashlib
import hmac
from dataclasses import dataclass

from wabridge.core.config.settings import Settings
from wabridge.core.exceptions import InvalidSignatureError
from wabridge.core.logging.logger import get_logger

SIGNATURE_HEADER = "x-hub-signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 digest of ``body`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, secret: str, signature: str) -> None:
    """
    Verify a ``sha256=<hex>`` signature header value against the raw body.

    Raises:
        InvalidSignatureError: If the header is malformed or does not match
    """
    if not signature.startswith(SIGNATURE_PREFIX):
        raise InvalidSignatureError("signature must start with 'sha256='")

    provided_hash = signature[len(SIGNATURE_PREFIX) :]
    expected_hash = compute_signature(body, secret)

    # Compare bytes so non-ASCII input fails the comparison instead of raising
    if not hmac.compare_digest(
        expected_hash.encode("ascii"), provided_hash.encode("utf-8")
    ):
        raise InvalidSignatureError("signature mismatch")


@dataclass(frozen=True)
class SignatureCheck:
    """Outcome of a request signature check that did not reject the request."""

    valid: bool
    skipped: bool = False
    reason: str | None = None


class SignatureVerifier:
    """
    Checks inbound webhook requests against the shared app secret.

    A missing header is advisory by default (logged, request accepted); with
    ``require_signature`` it is rejected like a mismatch. When the app secret has
    not been configured the check is skipped with a warning, unless
    ``require_signature`` is set, in which case every request is rejected.
    """

    def __init__(
        self,
        secret: str | None,
        *,
        require_signature: bool = False,
    ):
        self.secret = secret or None
        self.require_signature = require_signature
        self.logger = get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SignatureVerifier":
        secret = None if settings.is_placeholder("app_secret") else settings.app_secret
        return cls(secret, require_signature=settings.require_signature)

    def check(self, body: bytes, signature_header: str | None) -> SignatureCheck:
        """
        Check a request.

        Args:
            body: Raw request body bytes
            signature_header: Value of the X-Hub-Signature-256 header, if any

        Returns:
            SignatureCheck describing an accepted request

        Raises:
            InvalidSignatureError: If the request must be rejected
        """
        if not self.secret:
            if self.require_signature:
                self.logger.error(
                    "✗ REQUIRE_SIGNATURE is on but APP_SECRET is not configured, request rejected"
                )
                raise InvalidSignatureError("signature required but APP_SECRET is not configured")
            self.logger.warning(
                "⚠ APP_SECRET not configured - skipping signature validation"
            )
            return SignatureCheck(valid=False, skipped=True, reason="secret_not_configured")

        if not signature_header:
            if self.require_signature:
                self.logger.error("✗ Missing signature header, request rejected")
                raise InvalidSignatureError("missing signature header")
            self.logger.warning("⚠ No signature found in request headers")
            return SignatureCheck(valid=False, skipped=True, reason="missing_header")

        try:
            verify_signature(body, self.secret, signature_header)
        except InvalidSignatureError as e:
            self.logger.error(f"✗ Webhook signature validation failed: {e.reason}")
            raise

        return SignatureCheck(valid=True)
