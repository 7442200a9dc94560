from typing import Optional

from fastapi import FastAPI

from supportbot.config import Settings, settings as default_settings
from supportbot.dependencies import build_conversation_router
from supportbot.logging_config import get_logger, setup_logging
from supportbot.routers import webhook
from supportbot.services.router_service import ConversationRouter

logger = get_logger("main")


def create_app(
    settings: Optional[Settings] = None,
    conversation_router: Optional[ConversationRouter] = None,
) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Supportbot API",
        description="WhatsApp support router with AI replies and human handover",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.conversation_router = conversation_router or build_conversation_router(settings)

    app.include_router(webhook.router)

    @app.on_event("startup")
    async def log_startup() -> None:
        logger.info(
            "Supportbot started",
            extra={
                "context": {
                    "operators": len(settings.operator_ids()),
                    "preview_mode": settings.agent_preview_mode,
                    "polish": settings.polish_agent_messages,
                    "redis": bool(settings.redis_url),
                }
            },
        )

    @app.on_event("shutdown")
    async def close_session_store() -> None:
        await app.state.conversation_router.store.close()

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
