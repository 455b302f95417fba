"""
WhatsApp Cloud API client for outbound text replies.

Key Design Decisions:
- The aiohttp session is injected (owned by the application lifespan)
- Test phone number IDs from the developer dashboard never hit the network
- API error responses are classified and returned, never retried
- Network failures surface as TransportError to the caller
"""

import asyncio
from typing import Any

import aiohttp

from wabridge.core.config.settings import BUILTIN_TEST_PHONE_NUMBER_IDS, Settings
from wabridge.core.exceptions import TransportError
from wabridge.core.logging.logger import ContextLogger, get_logger
from wabridge.messaging.whatsapp.errors import ApiError, log_api_error
from wabridge.messaging.whatsapp.models import OutboundMessage, ReplyResult, ReplyStatus


class WhatsAppUrlBuilder:
    """Builds URLs for WhatsApp Business API endpoints."""

    def __init__(self, base_url: str, api_version: str):
        """
        Args:
            base_url: Facebook Graph API base URL
            api_version: Graph API version, e.g. ``v18.0``
        """
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version

    def get_messages_url(self, phone_number_id: str) -> str:
        """Build URL for sending messages from a phone number."""
        return f"{self.base_url}/{self.api_version}/{phone_number_id}/messages"


class ReplyClient:
    """
    Sends text replies through ``POST /{phone_number_id}/messages``.

    One client serves every phone number ID: the sending identity comes from
    the webhook that triggered the reply, not from configuration.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        access_token: str,
        *,
        api_version: str = "v18.0",
        base_url: str = "https://graph.facebook.com",
        timeout: float = 10.0,
        test_phone_number_ids: frozenset[str] = BUILTIN_TEST_PHONE_NUMBER_IDS,
        logger: ContextLogger | None = None,
    ):
        """
        Args:
            session: Persistent aiohttp session (managed by the FastAPI lifespan)
            access_token: WhatsApp Business API bearer token
            api_version: Graph API version
            base_url: Graph API base URL
            timeout: Total seconds allowed per send
            test_phone_number_ids: Phone number IDs that are never sent to
            logger: Pre-configured logger instance
        """
        self.session = session
        self.access_token = access_token
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.test_phone_number_ids = frozenset(test_phone_number_ids)
        self.url_builder = WhatsAppUrlBuilder(base_url, api_version)
        self.logger = logger or get_logger(__name__)

    @classmethod
    def from_settings(
        cls, session: aiohttp.ClientSession, settings: Settings
    ) -> "ReplyClient":
        return cls(
            session,
            settings.whatsapp_token,
            api_version=settings.graph_api_version,
            base_url=settings.graph_base_url,
            timeout=settings.send_timeout,
            test_phone_number_ids=settings.test_phone_number_ids,
        )

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def is_test_phone_number_id(self, phone_number_id: str) -> bool:
        return phone_number_id in self.test_phone_number_ids

    async def send(self, phone_number_id: str, recipient: str, text: str) -> ReplyResult:
        """
        Send a text message.

        Args:
            phone_number_id: Business phone number to send from
            recipient: WhatsApp ID of the recipient
            text: Message body

        Returns:
            ReplyResult with status ``sent``, ``test_skipped`` or ``api_error``

        Raises:
            TransportError: On timeout, DNS, connection or decoding failures
        """
        if self.is_test_phone_number_id(phone_number_id):
            self.logger.warning(
                "⚠ Skipping message send - Test/placeholder Phone Number ID detected",
                payload={
                    "phoneNumberId": phone_number_id,
                    "message": "This is likely a test webhook from Facebook Developer Dashboard",
                    "note": "Real webhooks will use your actual Phone Number ID",
                },
            )
            return ReplyResult(
                status=ReplyStatus.TEST_SKIPPED,
                phone_number_id=phone_number_id,
                recipient=recipient,
            )

        message = OutboundMessage(
            phone_number_id=phone_number_id, recipient=recipient, body=text
        )
        url = self.url_builder.get_messages_url(phone_number_id)
        self.logger.debug(f"Sending text message to {recipient} via {url}")

        try:
            async with self.session.post(
                url,
                headers=self._get_headers(),
                json=message.to_payload(),
                timeout=self.timeout,
            ) as response:
                http_status = response.status
                data = await response.json(content_type=None)
        except asyncio.TimeoutError as err:
            self.logger.error(
                "✗ Error sending message",
                payload={"error": "request timed out", "url": url},
            )
            raise TransportError("Graph API request timed out", url=url) from err
        except (aiohttp.ClientError, ValueError) as err:
            self.logger.error(
                "✗ Error sending message", payload={"error": str(err), "url": url}
            )
            raise TransportError(f"Graph API request failed: {err}", url=url) from err

        return self._build_result(message, http_status, data)

    def _build_result(
        self, message: OutboundMessage, http_status: int, data: Any
    ) -> ReplyResult:
        response = data if isinstance(data, dict) else {"body": data}
        error = response.get("error")

        if error is None and http_status >= 400:
            error = {"message": f"HTTP {http_status} without error body"}

        if error is not None:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            api_error = ApiError.from_response(error, http_status=http_status)
            log_api_error(api_error, self.logger, response)
            return ReplyResult(
                status=ReplyStatus.API_ERROR,
                phone_number_id=message.phone_number_id,
                recipient=message.recipient,
                error=api_error,
                response=response,
            )

        self.logger.info("✓ Message sent", payload=response)
        messages = response.get("messages")
        first = messages[0] if isinstance(messages, list) and messages else None
        return ReplyResult(
            status=ReplyStatus.SENT,
            phone_number_id=message.phone_number_id,
            recipient=message.recipient,
            message_id=first.get("id") if isinstance(first, dict) else None,
            response=response,
        )
