"""
wabridge - WhatsApp Business Cloud API webhook receiver

Verifies inbound webhooks, dispatches messages and delivery statuses to typed
handlers and relays keyword auto-replies through the Graph API.
"""

from .core.app import create_app
from .core.config.settings import Settings, _get_version_from_pyproject, load_settings

# Dynamic version from pyproject.toml
__version__ = _get_version_from_pyproject()

__all__ = [
    "Settings",
    "create_app",
    "load_settings",
]
