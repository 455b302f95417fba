"""Handler for delivery status updates. Observational only: it logs and returns."""

from wabridge.core.logging.logger import get_logger
from wabridge.webhooks.models import MessageStatus, StatusUpdate, WhatsAppMetadata


class StatusHandler:
    """Type-switch over ``StatusUpdate.status``."""

    def __init__(self):
        self.logger = get_logger(__name__)

    async def handle(self, status: StatusUpdate, metadata: WhatsAppMetadata) -> None:
        message_status = status.message_status

        if message_status == MessageStatus.SENT:
            self.logger.info(f"📤 Message {status.id} sent")
        elif message_status == MessageStatus.DELIVERED:
            self.logger.info(f"✓ Message {status.id} delivered")
        elif message_status == MessageStatus.READ:
            self.logger.info(f"✓✓ Message {status.id} read")
        elif message_status == MessageStatus.FAILED:
            self.logger.error(f"✗ Message {status.id} failed")
            if status.errors:
                self.logger.error(
                    "Error details",
                    payload=[error.model_dump(exclude_none=True) for error in status.errors],
                )
        else:
            self.logger.warning(
                f"❓ Unrecognized status '{status.status}' for message {status.id}"
            )
