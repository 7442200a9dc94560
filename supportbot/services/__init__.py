from supportbot.services.command_service import (
    Command,
    CommandType,
    parse_command,
)
from supportbot.services.intent_service import wants_technician
from supportbot.services.router_service import (
    ConversationRouter,
    RouteAction,
    RouteOutcome,
    RouterConfig,
)
from supportbot.services.session_store import (
    MemoryStore,
    RedisStore,
    SessionStore,
    TwoTierStore,
)
from supportbot.services.state_machine import (
    ConversationEvent,
    ConversationMode,
    InvalidTransitionError,
    can_transition,
    close,
    hand_over,
    transition,
)
