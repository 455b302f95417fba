from .errors import ApiError, ApiErrorKind, classify_api_error
from .models import OutboundMessage, ReplyResult, ReplyStatus
from .reply_client import ReplyClient, WhatsAppUrlBuilder

__all__ = [
    "ApiError",
    "ApiErrorKind",
    "OutboundMessage",
    "ReplyClient",
    "ReplyResult",
    "ReplyStatus",
    "WhatsAppUrlBuilder",
    "classify_api_error",
]
