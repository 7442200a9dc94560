from typing import Optional

from pydantic_settings import BaseSettings

DEFAULT_HANDOVER_AUTO_TEXT = (
    "Certo. Vou encaminhar seu atendimento para um técnico. Aguarde um momento, por favor."
)
DEFAULT_AI_FALLBACK_TEXT = "No momento não foi possível responder. Tente novamente em instantes."


class Settings(BaseSettings):
    # Session storage
    redis_url: Optional[str] = None
    redis_tls: bool = False
    redis_socket_timeout_seconds: float = 0.5

    # Operators
    owner_wa_id: Optional[str] = None
    tech_wa_id: Optional[str] = None

    # Reply workflow
    agent_preview_mode: bool = False
    polish_agent_messages: bool = False
    handover_auto_text: str = DEFAULT_HANDOVER_AUTO_TEXT
    ai_fallback_text: str = DEFAULT_AI_FALLBACK_TEXT

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 60.0

    # WhatsApp Cloud API
    whatsapp_token: str = ""
    phone_number_id: str = ""
    graph_api_version: str = "v20.0"
    whatsapp_timeout_seconds: float = 30.0

    # Webhook
    app_secret: str = ""
    verify_token: str = ""

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def operator_ids(self) -> list[str]:
        """Configured operator recipients, owner first."""
        return [wa_id for wa_id in (self.owner_wa_id, self.tech_wa_id) if wa_id]

    def is_operator(self, sender_id: str) -> bool:
        return bool(sender_id) and sender_id in self.operator_ids()


settings = Settings()
