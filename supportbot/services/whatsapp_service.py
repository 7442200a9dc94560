from typing import Optional

import httpx

from supportbot.config import Settings
from supportbot.logging_config import get_logger

logger = get_logger("whatsapp_service")


class WhatsAppService:
    """Sends text messages through the WhatsApp Cloud API (Meta Graph)."""

    BASE_URL = "https://graph.facebook.com/{version}/{phone_number_id}/messages"

    def __init__(
        self,
        token: str,
        phone_number_id: str,
        api_version: str = "v20.0",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.url = self.BASE_URL.format(version=api_version, phone_number_id=phone_number_id)
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def _make_request(self, payload: dict) -> Optional[httpx.Response]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                return await client.post(
                    self.url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.token}",
                        "Content-Type": "application/json",
                    },
                )
        except Exception as e:
            logger.error(f"WhatsApp API error: {e}")
            return None

    async def send_text(self, to: str, text: str) -> bool:
        """Send a text message. Returns False on any failure, never raises."""
        if not self.token:
            logger.error("WhatsApp token is missing (WHATSAPP_TOKEN env var not set)")
            return False

        if not to or not text:
            logger.warning(f"send_text: missing to={to!r} or text")
            return False

        response = await self._make_request(
            {
                "messaging_product": "whatsapp",
                "to": to,
                "type": "text",
                "text": {"body": text},
            }
        )
        if response is None:
            return False

        if response.status_code >= 400:
            logger.error(
                "WhatsApp send failed",
                extra={"context": {"to": to, "status": response.status_code, "body": response.text[:200]}},
            )
            return False

        logger.info(f"WhatsApp message sent: to={to}, status={response.status_code}")
        return True


def create_whatsapp_service(settings: Settings) -> WhatsAppService:
    return WhatsAppService(
        token=settings.whatsapp_token,
        phone_number_id=settings.phone_number_id,
        api_version=settings.graph_api_version,
        timeout_seconds=settings.whatsapp_timeout_seconds,
    )
