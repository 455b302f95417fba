"""
Tests for the Graph API reply client.
"""

import asyncio
import json
import logging

import aiohttp
import pytest

from wabridge.core.exceptions import TransportError
from wabridge.messaging.whatsapp.errors import ApiErrorKind
from wabridge.messaging.whatsapp.models import ReplyStatus
from wabridge.messaging.whatsapp.reply_client import ReplyClient, WhatsAppUrlBuilder

PHONE_NUMBER_ID = "106540352242922"
RECIPIENT = "15551234567"


def _client(session, **kwargs) -> ReplyClient:
    return ReplyClient(session, "EAAB-token", **kwargs)


class TestWhatsAppUrlBuilder:
    def test_messages_url(self):
        builder = WhatsAppUrlBuilder("https://graph.facebook.com/", "v18.0")
        assert (
            builder.get_messages_url("123")
            == "https://graph.facebook.com/v18.0/123/messages"
        )


class TestTestPhoneNumbers:
    """Dashboard test webhooks must never reach the network."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("phone_number_id", ["123456123", "123456789"])
    async def test_builtin_test_ids_are_skipped(
        self, mock_session_factory, caplog, phone_number_id
    ):
        session = mock_session_factory()

        result = await _client(session).send(phone_number_id, RECIPIENT, "hi")

        assert result.status is ReplyStatus.TEST_SKIPPED
        assert not result.success
        session.post.assert_not_called()
        assert "Test/placeholder Phone Number ID detected" in caplog.text

    @pytest.mark.asyncio
    async def test_configured_test_ids_are_skipped(self, mock_session_factory, settings):
        session = mock_session_factory()
        settings = settings.model_copy(
            update={"test_phone_number_ids": frozenset({"123456123", "555"})}
        )

        result = await ReplyClient.from_settings(session, settings).send("555", RECIPIENT, "hi")

        assert result.status is ReplyStatus.TEST_SKIPPED
        session.post.assert_not_called()


class TestSend:
    """Test successful sends and the request shape."""

    @pytest.mark.asyncio
    async def test_successful_send(self, mock_session_factory, caplog):
        caplog.set_level(logging.INFO)
        response = {
            "messaging_product": "whatsapp",
            "contacts": [{"input": RECIPIENT, "wa_id": RECIPIENT}],
            "messages": [{"id": "wamid.HBgL"}],
        }
        session = mock_session_factory(status=200, json_data=response)

        result = await _client(session).send(PHONE_NUMBER_ID, RECIPIENT, "Hello!")

        assert result.status is ReplyStatus.SENT
        assert result.success
        assert result.message_id == "wamid.HBgL"
        assert result.response == response
        assert "✓ Message sent" in caplog.text

        session.post.assert_called_once()
        call = session.post.call_args
        assert call.args[0] == f"https://graph.facebook.com/v18.0/{PHONE_NUMBER_ID}/messages"
        assert call.kwargs["headers"]["Authorization"] == "Bearer EAAB-token"
        assert call.kwargs["json"] == {
            "messaging_product": "whatsapp",
            "to": RECIPIENT,
            "type": "text",
            "text": {"body": "Hello!"},
        }
        assert call.kwargs["timeout"].total == 10.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "messages", [{"id": "wamid.HBgL"}, [], "wamid.HBgL", ["wamid.HBgL"], None]
    )
    async def test_unusual_messages_field_still_sent(self, mock_session_factory, messages):
        response = {"messaging_product": "whatsapp", "messages": messages}
        session = mock_session_factory(status=200, json_data=response)

        result = await _client(session).send(PHONE_NUMBER_ID, RECIPIENT, "Hello!")

        assert result.status is ReplyStatus.SENT
        assert result.message_id is None
        assert result.response == response

    @pytest.mark.asyncio
    async def test_settings_drive_url_and_timeout(self, mock_session_factory, settings):
        session = mock_session_factory()
        settings = settings.model_copy(
            update={
                "graph_api_version": "v21.0",
                "graph_base_url": "https://graph.example.com",
                "send_timeout": 3.0,
            }
        )

        await ReplyClient.from_settings(session, settings).send(PHONE_NUMBER_ID, RECIPIENT, "x")

        call = session.post.call_args
        assert call.args[0] == f"https://graph.example.com/v21.0/{PHONE_NUMBER_ID}/messages"
        assert call.kwargs["headers"]["Authorization"] == f"Bearer {settings.whatsapp_token}"
        assert call.kwargs["timeout"].total == 3.0


class TestApiErrors:
    """Test classification of Graph API error responses."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "http_status, error, kind, log_title",
        [
            (
                401,
                {"code": 190, "error_subcode": 463, "message": "Error validating access token"},
                ApiErrorKind.TOKEN_EXPIRED,
                "✗ WhatsApp Token Expired!",
            ),
            (
                401,
                {"code": 190, "message": "Invalid OAuth access token - Cannot parse access token"},
                ApiErrorKind.INVALID_TOKEN,
                "✗ Invalid WhatsApp Token!",
            ),
            (
                400,
                {"code": 100, "error_subcode": 33, "message": "Unsupported post request."},
                ApiErrorKind.INVALID_PHONE_NUMBER_ID,
                "✗ Phone Number ID Error!",
            ),
            (
                400,
                {"code": 131030, "message": "Recipient phone number not in allowed list"},
                ApiErrorKind.GENERIC,
                "✗ WhatsApp API Error",
            ),
        ],
    )
    async def test_error_is_classified_and_logged(
        self, mock_session_factory, caplog, http_status, error, kind, log_title
    ):
        session = mock_session_factory(status=http_status, json_data={"error": error})

        result = await _client(session).send(PHONE_NUMBER_ID, RECIPIENT, "hi")

        assert result.status is ReplyStatus.API_ERROR
        assert result.error_kind is kind
        assert result.error.http_status == http_status
        error_lines = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
        assert len(error_lines) == 1
        assert error_lines[0].startswith(log_title)

    @pytest.mark.asyncio
    async def test_error_body_with_success_status(self, mock_session_factory):
        session = mock_session_factory(
            status=200, json_data={"error": {"code": 190, "error_subcode": 463}}
        )

        result = await _client(session).send(PHONE_NUMBER_ID, RECIPIENT, "hi")

        assert result.error_kind is ApiErrorKind.TOKEN_EXPIRED

    @pytest.mark.asyncio
    async def test_http_error_without_error_body(self, mock_session_factory):
        session = mock_session_factory(status=502, json_data={"unexpected": True})

        result = await _client(session).send(PHONE_NUMBER_ID, RECIPIENT, "hi")

        assert result.status is ReplyStatus.API_ERROR
        assert result.error_kind is ApiErrorKind.GENERIC
        assert result.error.message == "HTTP 502 without error body"

    @pytest.mark.asyncio
    async def test_errors_are_not_retried(self, mock_session_factory):
        session = mock_session_factory(status=500, json_data={"error": {"code": 1}})

        await _client(session).send(PHONE_NUMBER_ID, RECIPIENT, "hi")

        assert session.post.call_count == 1


class TestTransportErrors:
    """Network-level failures surface as TransportError."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [
            asyncio.TimeoutError(),
            aiohttp.ClientConnectionError("connection reset"),
            aiohttp.ClientError("dns failure"),
        ],
    )
    async def test_network_failure(self, mock_session_factory, caplog, exc):
        session = mock_session_factory(exc=exc)

        with pytest.raises(TransportError) as exc_info:
            await _client(session).send(PHONE_NUMBER_ID, RECIPIENT, "hi")

        assert exc_info.value.url.endswith(f"/{PHONE_NUMBER_ID}/messages")
        assert exc_info.value.__cause__ is exc
        assert "✗ Error sending message" in caplog.text

    @pytest.mark.asyncio
    async def test_undecodable_body(self, mock_session_factory):
        session = mock_session_factory(
            status=200, json_exc=json.JSONDecodeError("Expecting value", "<html>", 0)
        )

        with pytest.raises(TransportError):
            await _client(session).send(PHONE_NUMBER_ID, RECIPIENT, "hi")
