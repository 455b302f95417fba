"""
Exception hierarchy for wabridge.

Ingress errors are turned into HTTP status codes by the routes; outbound errors
are logged and surfaced to whatever started the send.
"""


class WabridgeError(Exception):
    """Base class for all wabridge errors."""


class ConfigurationError(WabridgeError):
    """Raised when the configuration file or environment holds invalid values."""


class InvalidSignatureError(WabridgeError):
    """The X-Hub-Signature-256 header does not match the request body."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid webhook signature: {reason}")


class UnexpectedObjectError(WabridgeError):
    """The envelope's ``object`` discriminator is not a WhatsApp Business Account."""

    def __init__(self, object_type: object):
        self.object_type = object_type
        super().__init__(f"Unexpected webhook object: {object_type!r}")


class UnhandledItemError(WabridgeError):
    """
    Wraps an exception raised while processing a single envelope item.

    The dispatcher logs and counts these; they never abort sibling items.
    """

    def __init__(self, item_kind: str, location: str, cause: BaseException):
        self.item_kind = item_kind
        self.location = location
        self.cause = cause
        super().__init__(f"Failed to process {item_kind} at {location}: {cause}")


class TransportError(WabridgeError):
    """Network-level failure while talking to the Graph API (timeout, DNS, reset)."""

    def __init__(self, message: str, *, url: str | None = None):
        self.url = url
        super().__init__(message)
