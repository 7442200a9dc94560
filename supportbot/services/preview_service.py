from typing import Awaitable, Callable, Optional

from supportbot.logging_config import get_logger
from supportbot.services.result import Result
from supportbot.services.session_store import SessionStore

logger = get_logger("preview_service")


def format_preview_notice(to: str, text: str) -> str:
    return (
        "Prévia da mensagem ao cliente:\n\n"
        f'"{text}"\n\n'
        f"Para confirmar o envio:\n/enviar {to}\n\n"
        f"Para editar manualmente:\n/respraw {to} nova mensagem"
    )


class PreviewWorkflow:
    """
    Stage an operator reply, then release it with /enviar.

    stage() overwrites any pending preview for the recipient. commit() is
    get -> deliver -> clear and is not atomic: a preview staged for the same
    recipient while a commit is in flight can be cleared unsent (last writer
    wins).
    """

    def __init__(self, store: SessionStore):
        self.store = store

    async def stage(self, to: str, text: str) -> None:
        await self.store.save_preview(to, text)
        logger.info("Preview staged", extra={"context": {"to": to, "chars": len(text)}})

    async def pending(self, to: str) -> Optional[str]:
        return await self.store.get_preview(to)

    async def commit(self, to: str, deliver: Callable[[str, str], Awaitable[bool]]) -> Result[str]:
        """Deliver the pending preview for `to`; cleared only after a successful send."""
        preview = await self.store.get_preview(to)
        if not preview:
            return Result.failure(f"No preview pending for {to}", "no_preview")

        if not await deliver(to, preview):
            return Result.failure(f"Preview delivery to {to} failed", "delivery_failed")

        await self.store.clear_preview(to)
        logger.info("Preview released", extra={"context": {"to": to}})
        return Result.success(preview)
