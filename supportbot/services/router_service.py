"""Routing of inbound WhatsApp messages.

For every message the router decides, in this order:

1. operator command (sender is the owner or the technician);
2. handover request (client asks for a person);
3. passthrough to operators (conversation already in HUMAN mode);
4. AI-assisted reply.

All state lives in the SessionStore; the router only reads it on entry and
writes it on exit. Outbound sends are independent: a failed notification to
one operator never stops the next one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from supportbot.config import DEFAULT_AI_FALLBACK_TEXT, DEFAULT_HANDOVER_AUTO_TEXT, Settings
from supportbot.logging_config import UserLoggerAdapter, get_logger
from supportbot.services.ai_service import AIService, build_support_messages
from supportbot.services.command_service import (
    HELP_TEXT,
    CloseCommand,
    Command,
    CommandType,
    ListCommand,
    MalformedCommand,
    ReplyCommand,
    SendCommand,
    parse_command,
)
from supportbot.services.intent_service import wants_technician
from supportbot.services.polish_service import PolishService
from supportbot.services.preview_service import PreviewWorkflow, format_preview_notice
from supportbot.services.session_store import ConversationTurn, SessionStore
from supportbot.services.state_machine import (
    ConversationEvent,
    ConversationMode,
    close,
    hand_over,
    transition,
)

logger = get_logger("router")

NO_PREVIEW_TEXT = "Não há mensagem em prévia para este cliente."
PREVIEW_SENT_TEXT = "Mensagem enviada ao cliente."
PREVIEW_FAILED_TEXT = "Não foi possível enviar a mensagem ao cliente. A prévia foi mantida, tente /enviar novamente."
TICKET_CLOSED_USER_TEXT = "Atendimento encerrado. Caso precise, envie uma nova mensagem."
NO_OPEN_TICKETS_TEXT = "Nenhum atendimento em aberto."


class MessageTransport(Protocol):
    async def send_text(self, to: str, text: str) -> bool: ...


class RouteAction(str, Enum):
    REPLY_SENT = "reply_sent"
    PREVIEW_STAGED = "preview_staged"
    PREVIEW_SENT = "preview_sent"
    PREVIEW_MISSING = "preview_missing"
    PREVIEW_FAILED = "preview_failed"
    TICKET_CLOSED = "ticket_closed"
    TICKETS_LISTED = "tickets_listed"
    COMMAND_DROPPED = "command_dropped"
    HELP_SENT = "help_sent"
    HANDOVER = "handover"
    FORWARDED_TO_OPERATORS = "forwarded_to_operators"
    AI_REPLY = "ai_reply"
    AI_FAILED = "ai_failed"


@dataclass
class RouteOutcome:
    action: RouteAction
    user: Optional[str] = None
    mode: Optional[ConversationMode] = None


@dataclass
class RouterConfig:
    owner_id: Optional[str] = None
    technician_id: Optional[str] = None
    preview_mode: bool = False
    polish_replies: bool = False
    handover_auto_text: str = DEFAULT_HANDOVER_AUTO_TEXT
    ai_fallback_text: str = DEFAULT_AI_FALLBACK_TEXT

    @classmethod
    def from_settings(cls, settings: Settings) -> "RouterConfig":
        return cls(
            owner_id=settings.owner_wa_id or None,
            technician_id=settings.tech_wa_id or None,
            preview_mode=settings.agent_preview_mode,
            polish_replies=settings.polish_agent_messages,
            handover_auto_text=settings.handover_auto_text,
            ai_fallback_text=settings.ai_fallback_text,
        )


def format_handover_owner_notice(user: str, text: str) -> str:
    return (
        "Solicitação de técnico.\n"
        f"Cliente: {user}\n"
        f'Mensagem: "{text}"\n\n'
        f"Responder: /resp {user} sua mensagem\n"
        f"Encerrar: /fechar {user}\n"
        "Listar: /abertos"
    )


def format_handover_technician_notice(user: str, text: str) -> str:
    return (
        "Solicitação de técnico.\n"
        f"Cliente: {user}\n"
        f'Mensagem: "{text}"\n\n'
        f"Responder: /resp {user} sua mensagem"
    )


def format_human_mode_notice(user: str, text: str) -> str:
    return f'Nova mensagem (atendimento humano).\nCliente: {user}\nMensagem: "{text}"'


class ConversationRouter:
    def __init__(
        self,
        store: SessionStore,
        transport: MessageTransport,
        ai: AIService,
        config: RouterConfig,
        polisher: Optional[PolishService] = None,
    ):
        self.store = store
        self.transport = transport
        self.ai = ai
        self.config = config
        self.polisher = polisher
        self.previews = PreviewWorkflow(store)

    async def handle_message(self, sender_id: str, text: str, is_operator: bool) -> RouteOutcome:
        log = UserLoggerAdapter(logger, sender_id)

        if is_operator:
            command = parse_command(text)
            log.info("Operator command", context={"command": command.type.value})
            return await self._dispatch_command(sender_id, command, log)

        mode = await self.store.get_mode(sender_id)

        if wants_technician(text):
            return await self._hand_over(sender_id, text, mode, log)

        if mode == ConversationMode.HUMAN:
            transition(mode, ConversationEvent.HUMAN_MESSAGE)
            await self._notify_operators(
                format_human_mode_notice(sender_id, text),
                format_human_mode_notice(sender_id, text),
            )
            return RouteOutcome(RouteAction.FORWARDED_TO_OPERATORS, sender_id, mode)

        transition(mode, ConversationEvent.AI_TURN)
        return await self._ai_turn(sender_id, text, log)

    # Operator path

    async def _dispatch_command(self, operator_id: str, command: Command, log) -> RouteOutcome:
        if isinstance(command, ReplyCommand):
            return await self._reply(operator_id, command, log)
        if isinstance(command, SendCommand):
            return await self._send_preview(operator_id, command.to)
        if isinstance(command, CloseCommand):
            return await self._close(operator_id, command.to, log)
        if isinstance(command, ListCommand):
            return await self._list_tickets(operator_id)
        if isinstance(command, MalformedCommand):
            log.info("Malformed operator command dropped", context={"directive": command.directive})
            return RouteOutcome(RouteAction.COMMAND_DROPPED)

        await self._send(operator_id, HELP_TEXT)
        return RouteOutcome(RouteAction.HELP_SENT)

    async def _reply(self, operator_id: str, command: ReplyCommand, log) -> RouteOutcome:
        final_text = command.msg
        if self.config.polish_replies and command.polish_eligible and self.polisher:
            try:
                final_text = await self.polisher.polish(command.msg) or command.msg
            except Exception as exc:
                log.warning("Polish failed, using original text", context={"error": str(exc)})
                final_text = command.msg

        if self.config.preview_mode:
            await self.previews.stage(command.to, final_text)
            await self._send(operator_id, format_preview_notice(command.to, final_text))
            return RouteOutcome(RouteAction.PREVIEW_STAGED, command.to)

        await self._send(command.to, final_text)
        return RouteOutcome(RouteAction.REPLY_SENT, command.to)

    async def _send_preview(self, operator_id: str, to: str) -> RouteOutcome:
        result = await self.previews.commit(to, self._send)
        if result.ok:
            await self._send(operator_id, PREVIEW_SENT_TEXT)
            return RouteOutcome(RouteAction.PREVIEW_SENT, to)
        if result.error_code == "no_preview":
            await self._send(operator_id, NO_PREVIEW_TEXT)
            return RouteOutcome(RouteAction.PREVIEW_MISSING, to)
        await self._send(operator_id, PREVIEW_FAILED_TEXT)
        return RouteOutcome(RouteAction.PREVIEW_FAILED, to)

    async def _close(self, operator_id: str, to: str, log) -> RouteOutcome:
        next_mode = close(await self.store.get_mode(to))
        await self.store.close_ticket(to)
        log.info("Ticket closed", context={"client": to})

        await self._send(to, TICKET_CLOSED_USER_TEXT)
        await self._send(operator_id, f"Atendimento encerrado para {to}.")
        return RouteOutcome(RouteAction.TICKET_CLOSED, to, next_mode)

    async def _list_tickets(self, operator_id: str) -> RouteOutcome:
        tickets = await self.store.list_tickets()
        await self._send(operator_id, "\n".join(tickets) or NO_OPEN_TICKETS_TEXT)
        return RouteOutcome(RouteAction.TICKETS_LISTED)

    # Client path

    async def _hand_over(self, user: str, text: str, mode: ConversationMode, log) -> RouteOutcome:
        next_mode = hand_over(mode)
        await self.store.set_mode(user, next_mode)
        await self.store.open_ticket(user)
        log.info("Handover requested", context={"from_mode": mode.value})

        await self._send(user, self.config.handover_auto_text)
        await self._notify_operators(
            format_handover_owner_notice(user, text),
            format_handover_technician_notice(user, text),
        )
        return RouteOutcome(RouteAction.HANDOVER, user, next_mode)

    async def _ai_turn(self, user: str, text: str, log) -> RouteOutcome:
        context = await self.store.get_context(user)
        try:
            reply = await self.ai.complete(build_support_messages(context, text))
        except Exception as exc:
            log.error("AI completion failed", context={"error": str(exc)})
            await self._send(user, self.config.ai_fallback_text)
            return RouteOutcome(RouteAction.AI_FAILED, user, ConversationMode.AI)

        # An empty completion is still recorded, but WhatsAppService refuses
        # empty bodies, so nothing reaches the user in that case.
        await self._send(user, reply)
        await self.store.save_context(
            user,
            [
                *context,
                ConversationTurn(role="user", content=text),
                ConversationTurn(role="assistant", content=reply),
            ],
        )
        return RouteOutcome(RouteAction.AI_REPLY, user, ConversationMode.AI)

    # Delivery

    async def _notify_operators(self, owner_text: str, technician_text: str) -> None:
        if self.config.owner_id:
            await self._send(self.config.owner_id, owner_text)
        if self.config.technician_id:
            await self._send(self.config.technician_id, technician_text)

    async def _send(self, to: str, text: str) -> bool:
        try:
            delivered = await self.transport.send_text(to, text)
        except Exception as exc:
            logger.error(f"Send to {to} failed: {exc}", exc_info=True)
            return False
        if not delivered:
            logger.warning(f"Send to {to} was not delivered")
        return bool(delivered)
