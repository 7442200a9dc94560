from supportbot.logging_config import get_logger
from supportbot.services.ai_service import AIService

logger = get_logger("polish_service")

POLISH_SYSTEM_PROMPT = (
    "Você é um revisor de texto para atendimento ao cliente. "
    "Reescreva a mensagem do atendente em português formal, direto e objetivo. "
    "Não use emojis. Não use gírias. Não invente informações. "
    "Mantenha o sentido original. Se a mensagem já estiver adequada, devolva como está."
)

MIN_POLISHED_CHARS = 3
MAX_POLISHED_CHARS = 1500


class PolishService:
    """Rewrites operator replies in a formal register. Never blocks delivery."""

    def __init__(self, ai: AIService):
        self.ai = ai

    async def polish(self, original: str) -> str:
        messages = [
            {"role": "system", "content": POLISH_SYSTEM_PROMPT},
            {"role": "user", "content": original},
        ]
        try:
            polished = await self.ai.complete(messages)
        except Exception as exc:
            logger.warning(f"Polish failed, sending original text: {exc}")
            return original

        polished = (polished or "").strip()
        if len(polished) < MIN_POLISHED_CHARS:
            return original
        return polished[:MAX_POLISHED_CHARS]
