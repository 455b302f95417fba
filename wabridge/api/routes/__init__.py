"""API routes module for wabridge."""

from .health import router as health_router
from .webhooks import router as webhook_router

__all__ = ["health_router", "webhook_router"]
