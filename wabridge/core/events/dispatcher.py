"""
Event dispatcher for WhatsApp webhook envelopes.

Walks ``entry[] -> changes[] -> messages[]/statuses[]`` and routes every item to
its handler. Each change and each item is processed in isolation: a failure is
logged with its stack trace and counted, and its siblings are still handled.
"""

from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any

from pydantic import ValidationError

from wabridge.core.events.message_handler import MessageHandler
from wabridge.core.events.status_handler import StatusHandler
from wabridge.core.exceptions import UnexpectedObjectError, UnhandledItemError
from wabridge.core.logging.context import request_context
from wabridge.core.logging.logger import get_logger
from wabridge.webhooks.models import (
    MESSAGES_FIELD,
    WHATSAPP_OBJECT,
    ChangeValue,
    InboundMessage,
    StatusUpdate,
    WebhookChange,
    WebhookEntry,
    WebhookEnvelope,
)


class DispatchOutcome(str, Enum):
    ACCEPTED = "accepted"
    NOT_FOUND = "not_found"
    ERROR = "error"


_HTTP_STATUS = {
    DispatchOutcome.ACCEPTED: HTTPStatus.OK,
    DispatchOutcome.NOT_FOUND: HTTPStatus.NOT_FOUND,
    DispatchOutcome.ERROR: HTTPStatus.INTERNAL_SERVER_ERROR,
}


@dataclass
class DispatchReport:
    """Outcome of dispatching one envelope."""

    outcome: DispatchOutcome
    messages: int = 0
    statuses: int = 0
    failed: int = 0
    error: str | None = None

    @property
    def http_status(self) -> HTTPStatus:
        return _HTTP_STATUS[self.outcome]

    @property
    def accepted(self) -> bool:
        return self.outcome == DispatchOutcome.ACCEPTED


class EventDispatcher:
    """
    Routes webhook envelope items to the message and status handlers.

    ``dispatch`` never raises: the result is always a ``DispatchReport`` whose
    ``http_status`` is what the webhook endpoint should answer.
    """

    def __init__(self, message_handler: MessageHandler, status_handler: StatusHandler):
        self.message_handler = message_handler
        self.status_handler = status_handler
        self.logger = get_logger(__name__)

    async def dispatch(self, body: dict[str, Any]) -> DispatchReport:
        """
        Dispatch a parsed webhook body.

        Args:
            body: Decoded JSON object of the POST request

        Returns:
            DispatchReport with the outcome and per-item counters
        """
        try:
            envelope = self._parse_envelope(body)
        except UnexpectedObjectError as e:
            self.logger.warning(f"⚠ {e}")
            return DispatchReport(DispatchOutcome.NOT_FOUND, error=str(e))
        except Exception as e:
            self.logger.exception("✗ Error processing webhook", payload={"error": str(e)})
            return DispatchReport(DispatchOutcome.ERROR, error=str(e))

        report = DispatchReport(DispatchOutcome.ACCEPTED)
        for entry_index, raw_entry in enumerate(envelope.entry):
            await self._dispatch_entry(raw_entry, f"entry[{entry_index}]", report)

        if report.failed:
            self.logger.warning(
                f"⚠ Webhook processed with {report.failed} failed item(s)",
                payload={"messages": report.messages, "statuses": report.statuses},
            )
        else:
            self.logger.debug(
                f"Webhook processed: {report.messages} message(s), "
                f"{report.statuses} status update(s)"
            )
        return report

    def _parse_envelope(self, body: dict[str, Any]) -> WebhookEnvelope:
        object_type = body.get("object")
        if object_type != WHATSAPP_OBJECT:
            raise UnexpectedObjectError(object_type)
        return WebhookEnvelope.model_validate(body)

    async def _dispatch_entry(
        self, raw_entry: Any, location: str, report: DispatchReport
    ) -> None:
        try:
            entry = WebhookEntry.model_validate(raw_entry)
        except ValidationError as e:
            self._record_failure(UnhandledItemError("entry", location, e), report)
            return

        for change_index, raw_change in enumerate(entry.changes):
            change_location = f"{location}.changes[{change_index}]"
            try:
                await self._dispatch_change(raw_change, change_location, report)
            except Exception as e:
                self._record_failure(
                    UnhandledItemError("change", change_location, e), report
                )

    async def _dispatch_change(
        self, raw_change: Any, location: str, report: DispatchReport
    ) -> None:
        change = WebhookChange.model_validate(raw_change)
        if change.field != MESSAGES_FIELD:
            self.logger.debug(f"Skipping change for field '{change.field}' at {location}")
            return

        value = ChangeValue.model_validate(change.value)
        metadata = value.metadata

        for index, raw_message in enumerate(value.messages or []):
            item_location = f"{location}.messages[{index}]"
            sender = raw_message.get("from") if isinstance(raw_message, dict) else None
            with request_context(metadata.phone_number_id, sender):
                try:
                    message = InboundMessage.model_validate(raw_message)
                    self.logger.info("📨 Received message", payload=message.summary())
                    await self.message_handler.handle(message, metadata)
                    report.messages += 1
                except Exception as e:
                    self._record_failure(
                        UnhandledItemError("message", item_location, e), report
                    )

        for index, raw_status in enumerate(value.statuses or []):
            item_location = f"{location}.statuses[{index}]"
            recipient = (
                raw_status.get("recipient_id") if isinstance(raw_status, dict) else None
            )
            with request_context(metadata.phone_number_id, recipient):
                try:
                    status = StatusUpdate.model_validate(raw_status)
                    self.logger.info("📊 Status update", payload=status.summary())
                    await self.status_handler.handle(status, metadata)
                    report.statuses += 1
                except Exception as e:
                    self._record_failure(
                        UnhandledItemError("status", item_location, e), report
                    )

    def _record_failure(self, error: UnhandledItemError, report: DispatchReport) -> None:
        report.failed += 1
        self.logger.error(
            f"✗ {error}",
            exc_info=(type(error.cause), error.cause, error.cause.__traceback__),
        )
