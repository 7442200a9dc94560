import hashlib
import hmac
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from supportbot.config import Settings
from supportbot.dependencies import get_conversation_router, get_settings
from supportbot.logging_config import get_logger
from supportbot.schemas.webhook import InboundMessage, WebhookAck, WhatsAppWebhookPayload
from supportbot.services.router_service import ConversationRouter

logger = get_logger("webhook")

router = APIRouter()

SIGNATURE_HEADER = "X-Hub-Signature-256"


def compute_signature(raw_body: bytes, app_secret: str) -> str:
    digest = hmac.new(app_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(raw_body: bytes, signature: Optional[str], app_secret: str) -> bool:
    """Meta signs the raw body with the app secret (HMAC-SHA256)."""
    if not app_secret:
        logger.error("APP_SECRET not configured, rejecting webhook")
        return False
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(raw_body, app_secret), signature)


async def process_inbound_message(
    conversation_router: ConversationRouter,
    settings: Settings,
    inbound: InboundMessage,
) -> None:
    """Runs after the 200 was sent. Nothing may escape from here."""
    try:
        outcome = await conversation_router.handle_message(
            inbound.sender_id,
            inbound.text,
            is_operator=settings.is_operator(inbound.sender_id),
        )
        logger.info(
            "Inbound message routed",
            extra={"context": {"sender": inbound.sender_id, "action": outcome.action.value}},
        )
    except Exception as e:
        logger.error(f"Inbound message processing failed: {e}", exc_info=True)


@router.get("/webhook", response_class=PlainTextResponse)
async def verify_webhook(request: Request, settings: Settings = Depends(get_settings)):
    """Subscription handshake: echo hub.challenge when hub.verify_token matches."""
    params = request.query_params
    token = params.get("hub.verify_token")
    if settings.verify_token and token == settings.verify_token:
        return PlainTextResponse(params.get("hub.challenge", ""))
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Verification failed")


@router.post("/webhook", response_model=WebhookAck)
async def receive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    conversation_router: ConversationRouter = Depends(get_conversation_router),
):
    raw_body = await request.body()
    if not verify_signature(raw_body, request.headers.get(SIGNATURE_HEADER), settings.app_secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        payload = WhatsAppWebhookPayload.model_validate_json(raw_body)
    except ValidationError as exc:
        logger.warning("Webhook payload validation failed", extra={"context": {"error": str(exc)}})
        return WebhookAck(status="ignored")

    inbound = InboundMessage.from_payload(payload)
    if inbound is None:
        return WebhookAck(status="ignored")

    background_tasks.add_task(process_inbound_message, conversation_router, settings, inbound)
    return WebhookAck()
