"""
Health check and status page endpoints.
"""

import time
from datetime import datetime, timezone
from html import escape
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["Health"])


def _uptime(request: Request) -> float:
    return time.monotonic() - request.app.state.started_at


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """
    Basic health check endpoint.

    Returns status, current UTC time and process uptime in seconds.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z"),
        "uptime": round(_uptime(request), 3),
    }


@router.get("/", response_class=HTMLResponse)
async def status_page(request: Request) -> str:
    """Human-readable status page."""
    settings = request.app.state.settings
    return f"""
    <html>
      <head><title>WhatsApp Webhook Server</title></head>
      <body style="font-family: Arial; padding: 40px; background: #f5f5f5;">
        <h1>✅ WhatsApp Webhook Server is Running</h1>
        <p><strong>Status:</strong> Active</p>
        <p><strong>Version:</strong> {escape(settings.version)}</p>
        <p><strong>Port:</strong> {settings.port}</p>
        <p><strong>Uptime:</strong> {int(_uptime(request))} seconds</p>
        <hr>
        <h3>Endpoints:</h3>
        <ul>
          <li><code>GET /api/webhooks/whatsapp</code> - Webhook verification</li>
          <li><code>POST /api/webhooks/whatsapp</code> - Receive messages</li>
          <li><code>GET /health</code> - Health check</li>
        </ul>
        <p style="color: #666; margin-top: 30px;">
          Check the console window and the {escape(settings.log_dir)} folder for activity.
        </p>
      </body>
    </html>
    """
