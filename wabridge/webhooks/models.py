"""
Pydantic models for WhatsApp Business Platform webhook payloads.

The envelope is parsed level by level: the outer models keep their children as
raw JSON so that each entry, change, message and status can be validated on its
own. A malformed item then fails alone instead of invalidating the whole batch.
Unknown fields are allowed everywhere because the platform adds fields over time.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

WHATSAPP_OBJECT = "whatsapp_business_account"
MESSAGES_FIELD = "messages"


class MessageType(str, Enum):
    """Inbound message types with a dedicated handler."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    LOCATION = "location"
    INTERACTIVE = "interactive"


class MessageStatus(str, Enum):
    """Delivery statuses reported for outbound messages."""

    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class _WebhookModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class WhatsAppMetadata(_WebhookModel):
    """Business phone number metadata, present in every change value."""

    phone_number_id: str = Field(..., description="Business phone number ID")
    display_phone_number: str | None = Field(
        None, description="Business display phone number"
    )


class TextContent(_WebhookModel):
    body: str


class MediaContent(_WebhookModel):
    """Payload shared by image, video, audio and document messages."""

    id: str = Field(..., description="Media ID, used to download the file")
    mime_type: str | None = None
    sha256: str | None = None
    caption: str | None = None
    filename: str | None = None


class LocationContent(_WebhookModel):
    latitude: float
    longitude: float
    name: str | None = None
    address: str | None = None


class InteractiveContent(_WebhookModel):
    """Interactive reply; ``type`` is ``button_reply`` or ``list_reply``."""

    type: str
    button_reply: dict[str, Any] | None = None
    list_reply: dict[str, Any] | None = None


class InboundMessage(_WebhookModel):
    """
    A message sent by a WhatsApp user to the business.

    ``type`` is kept as a raw string so new platform types still parse; the
    matching payload object is required for the types in ``MessageType``.
    """

    from_: str = Field(..., alias="from", description="Sender WhatsApp ID")
    id: str = Field(..., description="WhatsApp message ID (wamid.*)")
    timestamp: str = Field(..., description="Unix timestamp as a string")
    type: str = Field(..., description="Message type discriminator")

    text: TextContent | None = None
    image: MediaContent | None = None
    video: MediaContent | None = None
    audio: MediaContent | None = None
    document: MediaContent | None = None
    location: LocationContent | None = None
    interactive: InteractiveContent | None = None

    @model_validator(mode="after")
    def validate_payload_present(self):
        """A known type must carry its payload object."""
        message_type = self.message_type
        if message_type is not None and getattr(self, message_type.value) is None:
            raise ValueError(
                f"'{self.type}' message is missing its '{self.type}' payload"
            )
        return self

    @property
    def message_type(self) -> MessageType | None:
        """The typed discriminator, or None for types without a handler."""
        try:
            return MessageType(self.type)
        except ValueError:
            return None

    def summary(self) -> dict[str, Any]:
        """Identifying fields for log lines."""
        return {
            "from": self.from_,
            "type": self.type,
            "timestamp": self.timestamp,
            "id": self.id,
        }


class StatusError(_WebhookModel):
    """Error attached to a failed status update."""

    code: int | None = None
    title: str | None = None
    message: str | None = None
    error_data: dict[str, Any] | None = None
    href: str | None = None


class StatusUpdate(_WebhookModel):
    """Delivery status of a message previously sent by the business."""

    id: str = Field(..., description="WhatsApp message ID the status refers to")
    status: str = Field(..., description="Status discriminator")
    timestamp: str | None = None
    recipient_id: str | None = None
    errors: list[StatusError] | None = None

    @property
    def message_status(self) -> MessageStatus | None:
        try:
            return MessageStatus(self.status)
        except ValueError:
            return None

    def summary(self) -> dict[str, Any]:
        return {"id": self.id, "status": self.status, "timestamp": self.timestamp}


class ChangeValue(_WebhookModel):
    """
    Payload of a ``messages`` change.

    ``messages`` and ``statuses`` stay raw; the dispatcher validates them one by
    one into ``InboundMessage`` / ``StatusUpdate``.
    """

    messaging_product: str | None = None
    metadata: WhatsAppMetadata
    contacts: list[dict[str, Any]] | None = None
    messages: list[Any] | None = None
    statuses: list[Any] | None = None
    errors: list[dict[str, Any]] | None = None


class WebhookChange(_WebhookModel):
    field: str = Field(..., description="Subscribed field that changed")
    value: dict[str, Any] = Field(default_factory=dict)


class WebhookEntry(_WebhookModel):
    id: str | None = Field(None, description="WhatsApp Business Account ID")
    changes: list[Any] = Field(..., description="Changes, validated one by one")


class WebhookEnvelope(_WebhookModel):
    """Top-level webhook body."""

    object_type: str = Field(..., alias="object")
    entry: list[Any] = Field(..., description="Entries, validated one by one")
