from fastapi import Request

from supportbot.config import Settings
from supportbot.services.ai_service import AIService, create_llm_provider
from supportbot.services.polish_service import PolishService
from supportbot.services.router_service import ConversationRouter, RouterConfig
from supportbot.services.session_store import SessionStore, create_session_store
from supportbot.services.whatsapp_service import create_whatsapp_service


def build_conversation_router(settings: Settings, store: SessionStore | None = None) -> ConversationRouter:
    """Wire the router with its collaborators. One store instance per app."""
    ai = AIService(create_llm_provider(settings))
    return ConversationRouter(
        store=store or create_session_store(settings),
        transport=create_whatsapp_service(settings),
        ai=ai,
        config=RouterConfig.from_settings(settings),
        polisher=PolishService(ai),
    )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_conversation_router(request: Request) -> ConversationRouter:
    return request.app.state.conversation_router
