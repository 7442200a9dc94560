from fnmatch import fnmatch
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from supportbot.services.ai_service import AIService
from supportbot.services.llm import LLMResponse
from supportbot.services.router_service import ConversationRouter, RouterConfig
from supportbot.services.session_store import MemoryStore, RedisStore, SessionStore, TwoTierStore

OWNER = "5511900000001"
TECH = "5511900000002"
CLIENT = "5511999990000"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Minimal async redis client (get/set/delete/scan_iter)."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key: str):
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None):
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, key: str):
        self.ttls.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    async def scan_iter(self, match: str | None = None):
        for key in list(self.data):
            if match is None or fnmatch(key, match):
                yield key

    async def aclose(self):
        return None


class UnreachableRedis:
    """Every command fails like a Redis server that is down."""

    def __init__(self):
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def get(self, key: str):
        self._fail()

    async def set(self, key: str, value: str, ex: int | None = None):
        self._fail()

    async def delete(self, key: str):
        self._fail()

    async def scan_iter(self, match: str | None = None):
        self._fail()
        yield  # pragma: no cover

    async def aclose(self):
        return None


class FlakyRedis(FakeRedis):
    """FakeRedis that refuses every command while `down` is set."""

    def __init__(self):
        super().__init__()
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def get(self, key: str):
        self._check()
        return await super().get(key)

    async def set(self, key: str, value: str, ex: int | None = None):
        self._check()
        return await super().set(key, value, ex=ex)

    async def delete(self, key: str):
        self._check()
        return await super().delete(key)

    async def scan_iter(self, match: str | None = None):
        self._check()
        async for key in super().scan_iter(match=match):
            yield key


class FakeTransport:
    """Records outbound messages; recipients in `failing` get False back."""

    def __init__(self, failing: set[str] | None = None, raising: set[str] | None = None):
        self.sent: list[tuple[str, str]] = []
        self.failing = failing or set()
        self.raising = raising or set()

    async def send_text(self, to: str, text: str) -> bool:
        if to in self.raising:
            raise RuntimeError(f"transport exploded for {to}")
        if to in self.failing:
            return False
        self.sent.append((to, text))
        return True

    def to(self, recipient: str) -> list[str]:
        return [text for to, text in self.sent if to == recipient]


def make_store(client=None, clock=None) -> SessionStore:
    fallback = MemoryStore(clock=clock) if clock else MemoryStore()
    return SessionStore(TwoTierStore(RedisStore(client), fallback))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    """Session store without Redis: everything lives in the fallback map."""
    return make_store(clock=clock)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_store(fake_redis, clock):
    return make_store(client=fake_redis, clock=clock)


@pytest.fixture
def unreachable_store(clock):
    return make_store(client=UnreachableRedis(), clock=clock)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def llm_provider():
    provider = AsyncMock()
    provider.generate.return_value = LLMResponse(content="Olá. Em que posso ajudar?", model="gpt-4o-mini")
    return provider


@pytest.fixture
def ai(llm_provider):
    return AIService(llm_provider)


@pytest.fixture
def router_config():
    return RouterConfig(owner_id=OWNER, technician_id=TECH, handover_auto_text="Encaminhando para um técnico.")


@pytest.fixture
def make_router(memory_store, transport, ai, router_config):
    def _make(**overrides):
        params = {
            "store": memory_store,
            "transport": transport,
            "ai": ai,
            "config": router_config,
            "polisher": None,
        }
        params.update(overrides)
        return ConversationRouter(**params)

    return _make
