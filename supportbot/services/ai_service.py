import time
from typing import List

from supportbot.config import Settings
from supportbot.logging_config import get_logger
from supportbot.services.llm import LLMProvider, OpenAIProvider
from supportbot.services.session_store import ConversationTurn

logger = get_logger("ai_service")

SUPPORT_SYSTEM_PROMPT = (
    "Você é um atendente profissional de uma loja de assistência técnica. "
    "Seja formal, direto e objetivo. "
    "Não use emojis, gírias ou linguagem informal. "
    "Faça perguntas curtas e claras quando precisar de informações. "
    "Responda apenas o necessário para resolver a solicitação."
)

REPLY_TEMPERATURE = 0.6


def build_support_messages(context: List[ConversationTurn], user_message: str) -> List[dict]:
    """System persona + stored context + the new user turn."""
    return [
        {"role": "system", "content": SUPPORT_SYSTEM_PROMPT},
        *context,
        {"role": "user", "content": user_message},
    ]


class AIService:
    """Chat-completion collaborator used by the router."""

    def __init__(self, provider: LLMProvider, temperature: float = REPLY_TEMPERATURE):
        self.provider = provider
        self.temperature = temperature

    async def complete(self, turns: List[dict]) -> str:
        """Return the assistant text. Empty string when the model returns nothing; errors propagate."""
        started = time.monotonic()
        response = await self.provider.generate(turns, temperature=self.temperature)
        logger.info(
            "AI completion",
            extra={
                "context": {
                    "model": response.model,
                    "turns": len(turns),
                    "elapsed_ms": round((time.monotonic() - started) * 1000, 2),
                    "empty": not response.content,
                }
            },
        )
        return response.content or ""


def create_llm_provider(settings: Settings) -> OpenAIProvider:
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set, AI replies will fail and fall back")
    return OpenAIProvider(
        api_key=settings.openai_api_key,
        default_model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
    )
