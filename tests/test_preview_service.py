import pytest
from unittest.mock import AsyncMock

from supportbot.services.preview_service import PreviewWorkflow, format_preview_notice

CLIENT = "5511999990000"


class TestFormatPreviewNotice:
    def test_contains_text_and_follow_up_commands(self):
        notice = format_preview_notice(CLIENT, "Seu aparelho está pronto.")
        assert '"Seu aparelho está pronto."' in notice
        assert f"/enviar {CLIENT}" in notice
        assert f"/respraw {CLIENT} nova mensagem" in notice


class TestPreviewWorkflow:
    @pytest.mark.asyncio
    async def test_stage_then_commit(self, memory_store):
        workflow = PreviewWorkflow(memory_store)
        deliver = AsyncMock(return_value=True)

        await workflow.stage(CLIENT, "texto final")
        result = await workflow.commit(CLIENT, deliver)

        assert result.ok is True
        assert result.value == "texto final"
        deliver.assert_awaited_once_with(CLIENT, "texto final")
        assert await workflow.pending(CLIENT) is None

    @pytest.mark.asyncio
    async def test_stage_overwrites(self, memory_store):
        workflow = PreviewWorkflow(memory_store)
        deliver = AsyncMock(return_value=True)

        await workflow.stage(CLIENT, "rascunho")
        await workflow.stage(CLIENT, "versão final")
        await workflow.commit(CLIENT, deliver)

        deliver.assert_awaited_once_with(CLIENT, "versão final")

    @pytest.mark.asyncio
    async def test_commit_without_preview(self, memory_store):
        deliver = AsyncMock(return_value=True)
        result = await PreviewWorkflow(memory_store).commit(CLIENT, deliver)

        assert result.ok is False
        assert result.error_code == "no_preview"
        deliver.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_delivery_keeps_preview(self, memory_store):
        workflow = PreviewWorkflow(memory_store)
        await workflow.stage(CLIENT, "texto")

        result = await workflow.commit(CLIENT, AsyncMock(return_value=False))

        assert result.error_code == "delivery_failed"
        assert await workflow.pending(CLIENT) == "texto"
