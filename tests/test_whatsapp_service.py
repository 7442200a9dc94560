import json

import httpx
import pytest

from supportbot.config import Settings
from supportbot.services.whatsapp_service import WhatsAppService, create_whatsapp_service


def _service(handler, token: str = "wa-token") -> WhatsAppService:
    return WhatsAppService(
        token=token,
        phone_number_id="123456",
        api_version="v20.0",
        transport=httpx.MockTransport(handler),
    )


class TestSendText:
    @pytest.mark.asyncio
    async def test_payload_and_headers(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

        assert await _service(handler).send_text("5511999990000", "Olá") is True

        [request] = captured
        assert str(request.url) == "https://graph.facebook.com/v20.0/123456/messages"
        assert request.headers["Authorization"] == "Bearer wa-token"
        assert json.loads(request.content) == {
            "messaging_product": "whatsapp",
            "to": "5511999990000",
            "type": "text",
            "text": {"body": "Olá"},
        }

    @pytest.mark.asyncio
    async def test_http_error_returns_false(self):
        service = _service(lambda request: httpx.Response(400, json={"error": {"message": "bad"}}))
        assert await service.send_text("5511999990000", "Olá") is False

    @pytest.mark.asyncio
    async def test_network_error_returns_false(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        assert await _service(handler).send_text("5511999990000", "Olá") is False

    @pytest.mark.asyncio
    async def test_missing_token_skips_request(self):
        calls = []
        service = _service(lambda request: calls.append(request) or httpx.Response(200), token="")

        assert await service.send_text("5511999990000", "Olá") is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_empty_text_skips_request(self):
        calls = []
        service = _service(lambda request: calls.append(request) or httpx.Response(200))

        assert await service.send_text("5511999990000", "") is False
        assert calls == []


class TestFactory:
    def test_uses_settings(self):
        settings = Settings(
            whatsapp_token="t", phone_number_id="999", graph_api_version="v19.0", _env_file=None
        )
        service = create_whatsapp_service(settings)
        assert service.url == "https://graph.facebook.com/v19.0/999/messages"
        assert service.token == "t"
