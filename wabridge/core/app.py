"""
FastAPI application factory for the wabridge webhook server.

Sync setup (middleware, routers, stateless services) happens in ``create_app``;
the lifespan only does the async work: the shared HTTP session, the reply
pipeline and the shutdown drain.
"""

import time
from contextlib import asynccontextmanager

import aiohttp
from fastapi import FastAPI

from wabridge.api.middleware.error_handler import ErrorHandlerMiddleware
from wabridge.api.routes.health import router as health_router
from wabridge.api.routes.webhooks import router as webhook_router
from wabridge.core.config.settings import Settings
from wabridge.core.events import EventDispatcher, MessageHandler, StatusHandler
from wabridge.core.logging.logger import get_app_logger, install_loop_exception_handler
from wabridge.core.tasks import ReplyExecutor
from wabridge.messaging.whatsapp.reply_client import ReplyClient
from wabridge.webhooks.challenge import ChallengeResponder
from wabridge.webhooks.signature import SignatureVerifier


def create_app(
    settings: Settings, *, session: aiohttp.ClientSession | None = None
) -> FastAPI:
    """
    Build the webhook server application.

    Args:
        settings: Loaded configuration
        session: Optional pre-built HTTP session; the app closes only the
            session it creates itself

    Returns:
        FastAPI application ready for uvicorn or ``TestClient``
    """
    logger = get_app_logger()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        install_loop_exception_handler()

        owns_session = session is None
        http_session = session or aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=100, keepalive_timeout=30),
            timeout=aiohttp.ClientTimeout(total=settings.send_timeout),
        )
        executor = ReplyExecutor()
        reply_client = ReplyClient.from_settings(http_session, settings)

        app.state.http_session = http_session
        app.state.reply_executor = executor
        app.state.reply_client = reply_client
        app.state.dispatcher = EventDispatcher(
            MessageHandler(reply_client, executor),
            StatusHandler(),
        )

        for name in settings.unconfigured_credentials:
            logger.warning(f"⚠ {name} is still the placeholder value in {settings.config_path}")
        if settings.require_signature and settings.is_placeholder("app_secret"):
            logger.error("✗ REQUIRE_SIGNATURE is on without APP_SECRET, every POST will be rejected")
        logger.info(f"🚀 wabridge v{settings.version} ready on port {settings.port}")

        try:
            yield
        finally:
            logger.info("🛑 Shutting down...")
            cancelled = await executor.drain(timeout=settings.send_timeout)
            if cancelled:
                logger.warning(f"⚠ {cancelled} reply task(s) cancelled at shutdown")
            if owns_session:
                await http_session.close()
                logger.info("🌐 HTTP session closed")

    app = FastAPI(
        title="wabridge",
        description="WhatsApp Business Cloud API webhook receiver",
        version=settings.version,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.signature_verifier = SignatureVerifier.from_settings(settings)
    app.state.challenge_responder = ChallengeResponder(settings.verify_token)

    app.add_middleware(ErrorHandlerMiddleware)

    app.include_router(health_router)
    app.include_router(webhook_router)

    return app
