"""
Inbound webhook primitives: payload models, signature checks and the
verification handshake.
"""

from .challenge import ChallengeResponder, ChallengeResult
from .models import (
    WHATSAPP_OBJECT,
    ChangeValue,
    InboundMessage,
    MessageStatus,
    MessageType,
    StatusUpdate,
    WebhookChange,
    WebhookEntry,
    WebhookEnvelope,
    WhatsAppMetadata,
)
from .signature import (
    SIGNATURE_HEADER,
    SignatureCheck,
    SignatureVerifier,
    compute_signature,
    verify_signature,
)

__all__ = [
    "SIGNATURE_HEADER",
    "WHATSAPP_OBJECT",
    "ChallengeResponder",
    "ChallengeResult",
    "ChangeValue",
    "InboundMessage",
    "MessageStatus",
    "MessageType",
    "SignatureCheck",
    "SignatureVerifier",
    "StatusUpdate",
    "WebhookChange",
    "WebhookEntry",
    "WebhookEnvelope",
    "WhatsAppMetadata",
    "compute_signature",
    "verify_signature",
]
