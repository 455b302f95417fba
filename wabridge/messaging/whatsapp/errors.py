"""
WhatsApp Graph API error classification.

Error responses carry ``{"error": {"code", "error_subcode", "message", ...}}``.
The few cases an operator can fix (expired or invalid token, wrong phone number
ID) get a dedicated category and remediation steps; everything else is generic.
None of these are retried.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wabridge.core.logging.logger import ContextLogger

# Graph API error codes
ERROR_CODE_OAUTH = 190
ERROR_CODE_INVALID_PARAMETER = 100
ERROR_SUBCODE_SESSION_EXPIRED = 463
ERROR_SUBCODE_OBJECT_NOT_FOUND = 33


class ApiErrorKind(str, Enum):
    TOKEN_EXPIRED = "token_expired"
    INVALID_TOKEN = "invalid_token"
    INVALID_PHONE_NUMBER_ID = "invalid_phone_number_id"
    GENERIC = "generic"


class ApiError(BaseModel):
    """A classified Graph API error."""

    model_config = ConfigDict(frozen=True)

    kind: ApiErrorKind
    code: int | None = None
    subcode: int | None = None
    message: str = ""
    error_type: str | None = None
    fbtrace_id: str | None = None
    http_status: int | None = Field(None, description="HTTP status of the response")

    @classmethod
    def from_response(
        cls, error: dict[str, Any], http_status: int | None = None
    ) -> "ApiError":
        """Build from the ``error`` object of a Graph API response."""
        code = _as_int(error.get("code"))
        subcode = _as_int(error.get("error_subcode"))
        message = str(error.get("message") or "")
        return cls(
            kind=classify_api_error(code, subcode, message),
            code=code,
            subcode=subcode,
            message=message,
            error_type=error.get("type"),
            fbtrace_id=error.get("fbtrace_id"),
            http_status=http_status,
        )


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def classify_api_error(
    code: int | None, subcode: int | None, message: str | None
) -> ApiErrorKind:
    """
    Map a Graph API error code/subcode/message to an ApiErrorKind.

    Args:
        code: ``error.code``
        subcode: ``error.error_subcode``
        message: ``error.message``

    Returns:
        The matching category, GENERIC when nothing specific applies
    """
    message = message or ""
    if code == ERROR_CODE_OAUTH:
        if (
            subcode == ERROR_SUBCODE_SESSION_EXPIRED
            or "Session has expired" in message
        ):
            return ApiErrorKind.TOKEN_EXPIRED
        if "Invalid OAuth access token" in message:
            return ApiErrorKind.INVALID_TOKEN
    elif code == ERROR_CODE_INVALID_PARAMETER and subcode == ERROR_SUBCODE_OBJECT_NOT_FOUND:
        return ApiErrorKind.INVALID_PHONE_NUMBER_ID
    return ApiErrorKind.GENERIC


_GUIDANCE: dict[ApiErrorKind, dict[str, Any]] = {
    ApiErrorKind.TOKEN_EXPIRED: {
        "title": "✗ WhatsApp Token Expired!",
        "help": "Your WhatsApp access token has expired. Please:",
        "steps": [
            "1. Go to Facebook Developers Console (developers.facebook.com)",
            "2. Navigate to your WhatsApp Business API app",
            '3. Go to "WhatsApp" → "API Setup"',
            "4. Generate a new access token",
            "5. Update WHATSAPP_TOKEN in config.txt",
            "6. Restart the server",
        ],
    },
    ApiErrorKind.INVALID_TOKEN: {
        "title": "✗ Invalid WhatsApp Token!",
        "help": "Your WhatsApp access token is invalid. Please:",
        "steps": [
            "1. Check if the token in config.txt is correct",
            "2. Generate a new token from Facebook Developers Console",
            "3. Make sure there are no extra spaces or characters",
            "4. Update WHATSAPP_TOKEN in config.txt",
            "5. Restart the server",
        ],
    },
    ApiErrorKind.INVALID_PHONE_NUMBER_ID: {
        "title": "✗ Phone Number ID Error!",
        "help": "The Phone Number ID in the webhook request is invalid. Please:",
        "steps": [
            "1. Check your WhatsApp Business API setup",
            "2. Verify the Phone Number ID in your webhook configuration",
            "3. Make sure the phone number is properly verified",
            "4. Check if you have the correct permissions for this phone number",
            "5. Go to Facebook Developers Console → WhatsApp → API Setup",
            "6. Verify your phone number and get the correct Phone Number ID",
        ],
        "note": "The Phone Number ID should be a long numeric string, not a test value like \"123456123\"",
    },
}


def remediation_for(kind: ApiErrorKind) -> dict[str, Any] | None:
    """Operator guidance for a category, or None for generic errors."""
    guidance = _GUIDANCE.get(kind)
    return dict(guidance) if guidance else None


def log_api_error(
    api_error: ApiError,
    logger: ContextLogger,
    response: dict[str, Any] | None = None,
) -> None:
    """
    Emit one error log entry for a classified API error.

    Operator-actionable categories get their remediation steps as payload;
    generic errors log the raw response.
    """
    guidance = remediation_for(api_error.kind)
    if guidance is None:
        logger.error(
            "✗ WhatsApp API Error",
            payload=response if response is not None else api_error.model_dump(),
        )
        return

    payload = {"error": api_error.message, **guidance}
    title = payload.pop("title")
    logger.error(title, payload=payload)
