"""Per-user session state with TTL.

Two tiers: Redis is the durable store, an in-process map with wall-clock
expiry is the fallback. Every operation against Redis returns a Result; the
composite store turns failures into fallback writes and log lines, so
callers never see a backend error. A live fallback entry is always newer
than Redis: it is only written when Redis missed the write, and it is
dropped as soon as Redis accepts a write for the same key.
"""

import asyncio
import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Set, TypedDict

import redis.asyncio as redis_async

from supportbot.config import Settings
from supportbot.logging_config import get_logger
from supportbot.services.result import BACKEND_DISABLED, Result
from supportbot.services.state_machine import ConversationMode, parse_mode

logger = get_logger("session_store")

KEY_NAMESPACE = "supportbot"
SESSION_TTL_SECONDS = 60 * 60 * 24
PREVIEW_TTL_SECONDS = 60 * 15
CONTEXT_MAX_TURNS = 10
TICKET_OPEN = "OPEN"

TURN_ROLES = {"system", "user", "assistant"}

# Marks a key deleted while Redis was unreachable.
TOMBSTONE = "\x00deleted"


class SessionKind(str, Enum):
    CONTEXT = "ctx"
    MODE = "mode"
    TICKET = "ticket"
    PREVIEW = "preview"


class ConversationTurn(TypedDict):
    role: str
    content: str


def build_key(kind: SessionKind, user: str) -> str:
    return f"{KEY_NAMESPACE}:{kind.value}:{user}"


def key_prefix(kind: SessionKind) -> str:
    return f"{KEY_NAMESPACE}:{kind.value}:"


@dataclass
class _Entry:
    value: str
    expires_at: Optional[float]


class MemoryStore:
    """In-process key/value map. Expired entries are dropped when read."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: dict[str, _Entry] = {}

    def _live_entry(self, key: str) -> Optional[_Entry]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            self._data.pop(key, None)
            return None
        return entry

    def get(self, key: str) -> Optional[str]:
        entry = self._live_entry(key)
        return entry.value if entry else None

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._data[key] = _Entry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str) -> list[str]:
        return [key for key in list(self._data) if key.startswith(prefix) and self._live_entry(key)]

    def __len__(self) -> int:
        return len(self._data)


class RedisStore:
    """Durable tier. Never raises: every call returns a Result."""

    def __init__(self, client=None):
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _disabled(self) -> Result:
        return Result.failure("REDIS_URL not configured", BACKEND_DISABLED)

    async def get(self, key: str) -> Result[Optional[str]]:
        if not self.client:
            return self._disabled()
        try:
            return Result.success(await self.client.get(key))
        except Exception as exc:
            return Result.from_exception(exc)

    async def set(self, key: str, value: str, ttl_seconds: int) -> Result[bool]:
        if not self.client:
            return self._disabled()
        try:
            await self.client.set(key, value, ex=ttl_seconds)
            return Result.success(True)
        except Exception as exc:
            return Result.from_exception(exc)

    async def delete(self, key: str) -> Result[bool]:
        if not self.client:
            return self._disabled()
        try:
            await self.client.delete(key)
            return Result.success(True)
        except Exception as exc:
            return Result.from_exception(exc)

    async def keys(self, prefix: str) -> Result[list[str]]:
        if not self.client:
            return self._disabled()
        try:
            return Result.success([key async for key in self.client.scan_iter(match=f"{prefix}*")])
        except Exception as exc:
            return Result.from_exception(exc)

    async def close(self) -> None:
        if not self.client:
            return
        try:
            await self.client.aclose()
        except Exception as exc:
            logger.warning(f"Redis close failed: {exc}")


class TwoTierStore:
    """Redis first, MemoryStore when Redis fails or is not configured."""

    def __init__(
        self,
        primary: RedisStore,
        fallback: Optional[MemoryStore] = None,
        tombstone_ttl_seconds: int = SESSION_TTL_SECONDS,
    ):
        self.primary = primary
        self.fallback = fallback if fallback is not None else MemoryStore()
        self.tombstone_ttl_seconds = tombstone_ttl_seconds

    def _log_fallback(self, operation: str, key: str, result: Result) -> None:
        if result.backend_disabled:
            return
        logger.warning(
            f"Redis {operation} failed, using in-memory fallback",
            extra={"context": {"key": key, "error": result.error, "error_code": result.error_code}},
        )

    async def get(self, kind: SessionKind, user: str) -> Optional[str]:
        key = build_key(kind, user)
        # Fallback entries only exist for writes Redis missed, so they are newer.
        local = self.fallback.get(key)
        if local == TOMBSTONE:
            return None
        if local is not None:
            return local
        result = await self.primary.get(key)
        if not result.ok:
            self._log_fallback("get", key, result)
            return None
        return result.value

    async def set(self, kind: SessionKind, user: str, value: str, ttl_seconds: int) -> None:
        key = build_key(kind, user)
        result = await self.primary.set(key, value, ttl_seconds)
        if result.ok:
            self.fallback.delete(key)
            return
        self._log_fallback("set", key, result)
        self.fallback.set(key, value, ttl_seconds)

    async def delete(self, kind: SessionKind, user: str) -> None:
        key = build_key(kind, user)
        self.fallback.delete(key)
        result = await self.primary.delete(key)
        if result.ok or result.backend_disabled:
            return
        self._log_fallback("delete", key, result)
        # Redis may still hold the value; hide it until it would have expired.
        self.fallback.set(key, TOMBSTONE, self.tombstone_ttl_seconds)

    async def list_keys(self, kind: SessionKind) -> Set[str]:
        prefix = key_prefix(kind)
        keys = set()
        deleted = set()
        for key in self.fallback.keys(prefix):
            (deleted if self.fallback.get(key) == TOMBSTONE else keys).add(key)
        result = await self.primary.keys(prefix)
        if not result.ok:
            self._log_fallback("keys", prefix, result)
        keys.update(result.unwrap_or([]))
        return {key[len(prefix):] for key in keys - deleted}

    async def close(self) -> None:
        await self.primary.close()


class SessionStore:
    """Session operations used by the conversation router."""

    def __init__(
        self,
        backend: TwoTierStore,
        *,
        session_ttl_seconds: int = SESSION_TTL_SECONDS,
        preview_ttl_seconds: int = PREVIEW_TTL_SECONDS,
        max_turns: int = CONTEXT_MAX_TURNS,
    ):
        self.backend = backend
        self.session_ttl_seconds = session_ttl_seconds
        self.preview_ttl_seconds = preview_ttl_seconds
        self.max_turns = max_turns

    # Context

    async def get_context(self, user: str) -> list[ConversationTurn]:
        raw = await self.backend.get(SessionKind.CONTEXT, user)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as exc:
            logger.warning(f"Context decode failed for {user}: {exc}")
            return []
        if not isinstance(data, list):
            return []
        return [
            ConversationTurn(role=item["role"], content=item["content"])
            for item in data
            if isinstance(item, dict)
            and item.get("role") in TURN_ROLES
            and isinstance(item.get("content"), str)
        ]

    async def save_context(self, user: str, turns: list[ConversationTurn]) -> None:
        trimmed = list(turns)[-self.max_turns:] if self.max_turns > 0 else []
        payload = json.dumps(trimmed, ensure_ascii=False)
        await self.backend.set(SessionKind.CONTEXT, user, payload, self.session_ttl_seconds)

    # Mode

    async def get_mode(self, user: str) -> ConversationMode:
        return parse_mode(await self.backend.get(SessionKind.MODE, user))

    async def set_mode(self, user: str, mode: ConversationMode) -> None:
        await self.backend.set(SessionKind.MODE, user, mode.value, self.session_ttl_seconds)

    # Tickets

    async def open_ticket(self, user: str) -> None:
        await self.backend.set(SessionKind.TICKET, user, TICKET_OPEN, self.session_ttl_seconds)

    async def has_open_ticket(self, user: str) -> bool:
        return await self.backend.get(SessionKind.TICKET, user) is not None

    async def close_ticket(self, user: str) -> None:
        """Delete the ticket and reset mode to AI. Both writes are attempted."""
        results = await asyncio.gather(
            self.backend.delete(SessionKind.TICKET, user),
            self.set_mode(user, ConversationMode.AI),
            return_exceptions=True,
        )
        for operation, outcome in zip(("ticket_delete", "mode_reset"), results):
            if isinstance(outcome, Exception):
                logger.error(
                    "Close ticket step failed",
                    extra={"context": {"user": user, "step": operation, "error": str(outcome)}},
                )

    async def list_tickets(self) -> list[str]:
        return sorted(await self.backend.list_keys(SessionKind.TICKET))

    # Preview

    async def save_preview(self, user: str, text: str) -> None:
        await self.backend.set(SessionKind.PREVIEW, user, text, self.preview_ttl_seconds)

    async def get_preview(self, user: str) -> Optional[str]:
        return await self.backend.get(SessionKind.PREVIEW, user)

    async def clear_preview(self, user: str) -> None:
        await self.backend.delete(SessionKind.PREVIEW, user)

    async def close(self) -> None:
        await self.backend.close()


def create_redis_client(settings: Settings):
    """Build a redis.asyncio client from settings. None when not configured."""
    url = (settings.redis_url or "").strip()
    if not url:
        logger.warning("REDIS_URL not set, session state is kept in memory only")
        return None
    if settings.redis_tls and url.startswith("redis://"):
        url = "rediss://" + url[len("redis://"):]
    try:
        return redis_async.from_url(
            url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
    except Exception as exc:
        logger.error(f"Redis init failed, using in-memory storage: {exc}")
        return None


def create_session_store(settings: Settings, clock: Callable[[], float] = time.time) -> SessionStore:
    backend = TwoTierStore(RedisStore(create_redis_client(settings)), MemoryStore(clock=clock))
    return SessionStore(backend)
