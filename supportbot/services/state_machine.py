from enum import Enum


class ConversationMode(str, Enum):
    AI = "AI"
    HUMAN = "HUMAN"


class ConversationEvent(str, Enum):
    HANDOVER = "handover"  # cliente pediu um técnico
    CLOSE = "close"  # operador encerrou com /fechar
    AI_TURN = "ai_turn"
    HUMAN_MESSAGE = "human_message"  # mensagem repassada aos operadores


TRANSITIONS = {
    (ConversationMode.AI, ConversationEvent.HANDOVER): ConversationMode.HUMAN,
    (ConversationMode.HUMAN, ConversationEvent.HANDOVER): ConversationMode.HUMAN,
    (ConversationMode.AI, ConversationEvent.CLOSE): ConversationMode.AI,
    (ConversationMode.HUMAN, ConversationEvent.CLOSE): ConversationMode.AI,
    (ConversationMode.AI, ConversationEvent.AI_TURN): ConversationMode.AI,
    (ConversationMode.HUMAN, ConversationEvent.HUMAN_MESSAGE): ConversationMode.HUMAN,
}


class InvalidTransitionError(Exception):
    def __init__(self, mode: ConversationMode, event: ConversationEvent):
        self.mode = mode
        self.event = event
        super().__init__(f"Invalid transition: {event.value} in mode {mode.value}")


def parse_mode(value: str | None) -> ConversationMode:
    """Stored mode string -> ConversationMode. Missing or unknown values mean AI."""
    try:
        return ConversationMode(value)
    except ValueError:
        return ConversationMode.AI


def can_transition(mode: ConversationMode, event: ConversationEvent) -> bool:
    """Check if event is allowed in the given mode."""
    return (mode, event) in TRANSITIONS


def transition(mode: ConversationMode, event: ConversationEvent) -> ConversationMode:
    """Apply event. Raises InvalidTransitionError if not allowed."""
    if not can_transition(mode, event):
        raise InvalidTransitionError(mode, event)
    return TRANSITIONS[(mode, event)]


def hand_over(mode: ConversationMode) -> ConversationMode:
    """Conversation goes to a human operator."""
    return transition(mode, ConversationEvent.HANDOVER)


def close(mode: ConversationMode) -> ConversationMode:
    """Operator closes the ticket, back to AI."""
    return transition(mode, ConversationEvent.CLOSE)
