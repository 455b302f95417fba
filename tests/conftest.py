"""
Pytest configuration and common fixtures for wabridge tests.

Provides shared fixtures and configuration for all test modules.
"""

import logging
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from wabridge.core.config.settings import Settings, _KEY_MAP, CONFIG_PATH_ENV
from wabridge.webhooks.signature import compute_signature

PHONE_NUMBER_ID = "106540352242922"
SENDER = "15551234567"
VERIFY_TOKEN = "test_verify_token"
APP_SECRET = "test_app_secret"
WHATSAPP_TOKEN = "test_whatsapp_token"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Fully configured settings writing logs to a temporary directory."""
    return Settings(
        verify_token=VERIFY_TOKEN,
        app_secret=APP_SECRET,
        whatsapp_token=WHATSAPP_TOKEN,
        log_dir=str(tmp_path / "logs"),
        config_path=str(tmp_path / "config.txt"),
    )


@pytest.fixture
def mock_session_factory() -> Callable[..., MagicMock]:
    """
    Build a mock aiohttp session whose ``post`` returns a canned response.

    Usage:
        session = mock_session_factory(status=200, json_data={...})
        session = mock_session_factory(exc=asyncio.TimeoutError())
    """

    def factory(
        status: int = 200,
        json_data: Any = None,
        exc: BaseException | None = None,
        json_exc: BaseException | None = None,
    ) -> MagicMock:
        response = MagicMock()
        response.status = status
        if json_exc is not None:
            response.json = AsyncMock(side_effect=json_exc)
        else:
            response.json = AsyncMock(
                return_value=json_data
                if json_data is not None
                else {"messages": [{"id": "wamid.OUTBOUND"}]}
            )

        context_manager = MagicMock()
        context_manager.__aenter__ = AsyncMock(return_value=response)
        context_manager.__aexit__ = AsyncMock(return_value=False)

        session = MagicMock()
        if exc is not None:
            session.post = MagicMock(side_effect=exc)
        else:
            session.post = MagicMock(return_value=context_manager)
        session.close = AsyncMock()
        return session

    return factory


def make_text_message(
    body: str = "hello there", sender: str = SENDER, message_id: str = "wamid.IN1"
) -> dict[str, Any]:
    return {
        "from": sender,
        "id": message_id,
        "timestamp": "1700000000",
        "type": "text",
        "text": {"body": body},
    }


def make_status(status: str = "delivered", message_id: str = "wamid.OUT1", **extra):
    return {
        "id": message_id,
        "status": status,
        "timestamp": "1700000001",
        "recipient_id": SENDER,
        **extra,
    }


def make_webhook_body(
    messages: list | None = None,
    statuses: list | None = None,
    phone_number_id: str = PHONE_NUMBER_ID,
    field: str = "messages",
) -> dict[str, Any]:
    """A single-entry, single-change WhatsApp Business Account envelope."""
    value: dict[str, Any] = {
        "messaging_product": "whatsapp",
        "metadata": {
            "display_phone_number": "15550001111",
            "phone_number_id": phone_number_id,
        },
    }
    if messages is not None:
        value["contacts"] = [{"profile": {"name": "Test User"}, "wa_id": SENDER}]
        value["messages"] = messages
    if statuses is not None:
        value["statuses"] = statuses
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA_ID", "changes": [{"field": field, "value": value}]}],
    }


def sign(body: bytes, secret: str = APP_SECRET) -> str:
    return "sha256=" + compute_signature(body, secret)


# Environment setup for tests
@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Keep tests independent of the developer's environment and config file."""
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    for key in _KEY_MAP:
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def restore_root_logging():
    """Undo ``setup_logging`` side effects on the root logger."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
