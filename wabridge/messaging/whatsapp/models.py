"""
Outbound message and send-result models for the WhatsApp Cloud API.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wabridge.messaging.whatsapp.errors import ApiError, ApiErrorKind


class OutboundMessage(BaseModel):
    """Text message addressed from a business phone number to a WhatsApp user."""

    model_config = ConfigDict(frozen=True)

    phone_number_id: str = Field(..., min_length=1, description="Sending phone number ID")
    recipient: str = Field(..., min_length=1, description="Recipient WhatsApp ID")
    body: str = Field(..., min_length=1, max_length=4096, description="Text content")

    def to_payload(self) -> dict[str, Any]:
        """Request body for ``POST /{phone_number_id}/messages``."""
        return {
            "messaging_product": "whatsapp",
            "to": self.recipient,
            "type": "text",
            "text": {"body": self.body},
        }


class ReplyStatus(str, Enum):
    SENT = "sent"
    TEST_SKIPPED = "test_skipped"
    API_ERROR = "api_error"


class ReplyResult(BaseModel):
    """Result of a send operation."""

    status: ReplyStatus
    phone_number_id: str
    recipient: str
    message_id: str | None = None
    error: ApiError | None = None
    response: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        return self.status == ReplyStatus.SENT

    @property
    def error_kind(self) -> ApiErrorKind | None:
        return self.error.kind if self.error else None
