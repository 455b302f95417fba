"""Webhook verification handshake (the GET challenge Meta sends on subscription)."""

from dataclasses import dataclass
from http import HTTPStatus

from wabridge.core.logging.logger import get_logger

SUBSCRIBE_MODE = "subscribe"


@dataclass(frozen=True)
class ChallengeResult:
    """Plain-text HTTP answer to a verification request."""

    status_code: int
    body: str

    @property
    def verified(self) -> bool:
        return self.status_code == HTTPStatus.OK


class ChallengeResponder:
    """Answers ``hub.mode`` / ``hub.verify_token`` / ``hub.challenge`` requests."""

    def __init__(self, verify_token: str):
        self.verify_token = verify_token
        self.logger = get_logger(__name__)

    def respond(
        self,
        mode: str | None,
        verify_token: str | None,
        challenge: str | None,
    ) -> ChallengeResult:
        """
        Decide the handshake response.

        Args:
            mode: Value of hub.mode
            verify_token: Value of hub.verify_token
            challenge: Value of hub.challenge, echoed verbatim on success

        Returns:
            200 with the challenge, 403 on token mismatch, 400 if mode or token
            is missing
        """
        self.logger.info(
            "Webhook verification request received",
            payload={"mode": mode, "token_present": bool(verify_token)},
        )

        if not mode or not verify_token:
            self.logger.warning("✗ Missing mode or token parameters")
            return ChallengeResult(HTTPStatus.BAD_REQUEST, HTTPStatus.BAD_REQUEST.phrase)

        if mode == SUBSCRIBE_MODE and verify_token == self.verify_token:
            self.logger.info("✓ Webhook verified successfully!")
            return ChallengeResult(HTTPStatus.OK, challenge or "")

        self.logger.warning("✗ Verification failed. Token mismatch.")
        return ChallengeResult(HTTPStatus.FORBIDDEN, HTTPStatus.FORBIDDEN.phrase)
