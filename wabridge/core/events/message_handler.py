"""
Handler for inbound WhatsApp messages.

Routes each message by type through an explicit handler table. Text messages
are matched against keyword rules that may schedule one auto-reply; every other
known type is logged with its identifying fields.
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from wabridge.core.logging.logger import get_logger
from wabridge.core.tasks import ReplyExecutor
from wabridge.messaging.whatsapp.reply_client import ReplyClient
from wabridge.webhooks.models import InboundMessage, MessageType, WhatsAppMetadata


@dataclass(frozen=True)
class ReplyRule:
    """Reply with ``reply`` when the lowercased text contains any of ``keywords``."""

    name: str
    keywords: tuple[str, ...]
    reply: str

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


DEFAULT_REPLY_RULES: tuple[ReplyRule, ...] = (
    ReplyRule(
        name="greeting",
        keywords=("hello", "hi"),
        reply="Hello! Thank you for contacting us. 👋",
    ),
    ReplyRule(
        name="help",
        keywords=("help",),
        reply="How can I assist you today?",
    ),
)


def match_reply_rule(
    text: str, rules: Sequence[ReplyRule] = DEFAULT_REPLY_RULES
) -> ReplyRule | None:
    """
    First rule whose keywords appear in ``text`` (case-insensitive substring match).

    Args:
        text: Raw message body
        rules: Rules in priority order

    Returns:
        The matching rule, or None
    """
    lowered = text.lower()
    for rule in rules:
        if rule.matches(lowered):
            return rule
    return None


MessageTypeHandler = Callable[[InboundMessage, WhatsAppMetadata], Awaitable[None]]


class MessageHandler:
    """
    Type-switch over inbound messages.

    Every ``MessageType`` must have an entry in the handler table; messages of
    any other type fall through to the unsupported-type notice.
    """

    def __init__(
        self,
        reply_client: ReplyClient,
        executor: ReplyExecutor,
        rules: Sequence[ReplyRule] = DEFAULT_REPLY_RULES,
    ):
        self.reply_client = reply_client
        self.executor = executor
        self.rules = tuple(rules)
        self.logger = get_logger(__name__)

        self._handlers: dict[MessageType, MessageTypeHandler] = {
            MessageType.TEXT: self._handle_text,
            MessageType.IMAGE: self._handle_media,
            MessageType.VIDEO: self._handle_media,
            MessageType.AUDIO: self._handle_media,
            MessageType.DOCUMENT: self._handle_media,
            MessageType.LOCATION: self._handle_location,
            MessageType.INTERACTIVE: self._handle_interactive,
        }
        missing = set(MessageType) - self._handlers.keys()
        if missing:
            raise RuntimeError(
                f"No handler registered for message types: {sorted(m.value for m in missing)}"
            )

    async def handle(self, message: InboundMessage, metadata: WhatsAppMetadata) -> None:
        """
        Handle one inbound message.

        Args:
            message: Parsed inbound message
            metadata: Metadata of the change the message arrived in
        """
        message_type = message.message_type
        if message_type is None:
            self.logger.warning(f"❓ Unsupported type: {message.type}")
            return
        await self._handlers[message_type](message, metadata)

    async def _handle_text(
        self, message: InboundMessage, metadata: WhatsAppMetadata
    ) -> None:
        body = message.text.body
        self.logger.info(f"💬 Text: {body}")

        rule = match_reply_rule(body, self.rules)
        if rule is None:
            return

        self.logger.info(f"↩ Auto-reply '{rule.name}' triggered for {message.from_}")
        self.executor.submit(
            self.reply_client.send(metadata.phone_number_id, message.from_, rule.reply),
            description=f"{rule.name} reply to {message.from_}",
        )

    async def _handle_media(
        self, message: InboundMessage, metadata: WhatsAppMetadata
    ) -> None:
        media = getattr(message, message.type)
        emoji = {
            MessageType.IMAGE: "🖼",
            MessageType.VIDEO: "🎥",
            MessageType.AUDIO: "🎵",
            MessageType.DOCUMENT: "📄",
        }[message.message_type]
        self.logger.info(
            f"{emoji} {message.type.capitalize()} ID: {media.id}",
            payload={
                "mime_type": media.mime_type,
                "caption": media.caption,
                "filename": media.filename,
            }
            if media.mime_type or media.caption or media.filename
            else None,
        )

    async def _handle_location(
        self, message: InboundMessage, metadata: WhatsAppMetadata
    ) -> None:
        location = message.location
        self.logger.info(f"📍 Location: {location.latitude}, {location.longitude}")

    async def _handle_interactive(
        self, message: InboundMessage, metadata: WhatsAppMetadata
    ) -> None:
        interactive = message.interactive
        reply = interactive.button_reply or interactive.list_reply
        self.logger.info(
            f"🔘 Interactive: {interactive.type}",
            payload=reply,
        )
