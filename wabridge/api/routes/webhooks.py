"""
WhatsApp webhook routes.

One URL handles both the verification handshake (GET) and event delivery
(POST). Routes only deal with HTTP concerns; verification, the handshake and
dispatch live in their own services on ``app.state``.
"""

import json
from http import HTTPStatus

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse

from wabridge.core.exceptions import InvalidSignatureError
from wabridge.core.logging.logger import get_logger
from wabridge.webhooks.signature import SIGNATURE_HEADER

WEBHOOK_PATH = "/api/webhooks/whatsapp"

router = APIRouter(
    tags=["Webhooks"],
    responses={
        400: {"description": "Bad Request - Missing parameters or invalid JSON"},
        401: {"description": "Unauthorized - Invalid webhook signature"},
        403: {"description": "Forbidden - Webhook verification failed"},
        404: {"description": "Not Found - Not a WhatsApp Business Account event"},
        500: {"description": "Internal Server Error"},
    },
)


def _plain(status: HTTPStatus, body: str | None = None) -> PlainTextResponse:
    return PlainTextResponse(
        status.phrase if body is None else body, status_code=status
    )


@router.get(WEBHOOK_PATH)
async def verify_webhook(
    request: Request,
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
):
    """
    Handle webhook verification (challenge-response).

    Returns:
        PlainTextResponse with the challenge on success, 403 or 400 otherwise
    """
    result = request.app.state.challenge_responder.respond(
        hub_mode, hub_verify_token, hub_challenge
    )
    return _plain(HTTPStatus(result.status_code), result.body)


@router.post(WEBHOOK_PATH)
async def receive_webhook(request: Request):
    """
    Receive webhook events.

    The signature is checked on the raw body before it is decoded. The response
    is sent once every item has been handed to its handler; replies triggered by
    the events may still be in flight.
    """
    logger = get_logger(__name__)
    body = await request.body()

    try:
        request.app.state.signature_verifier.check(
            body, request.headers.get(SIGNATURE_HEADER)
        )
    except InvalidSignatureError:
        return _plain(HTTPStatus.UNAUTHORIZED)

    try:
        payload = json.loads(body)
    except ValueError as e:
        logger.error(f"✗ Failed to parse webhook payload: {e}")
        return _plain(HTTPStatus.BAD_REQUEST)

    if not isinstance(payload, dict):
        logger.error(
            f"✗ Webhook payload must be a JSON object, got {type(payload).__name__}"
        )
        return _plain(HTTPStatus.BAD_REQUEST)

    report = await request.app.state.dispatcher.dispatch(payload)
    return _plain(report.http_status)
