"""Outcome of a call against an unreliable collaborator (Redis, delivery).

Backend wrappers return a Result instead of raising so the session layer can
decide between the durable tier and the in-memory one.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

# Redis configured but the command failed (refused, timeout, protocol error).
BACKEND_UNAVAILABLE = "backend_unavailable"
# No REDIS_URL: the in-memory tier is the only store, not a degraded state.
BACKEND_DISABLED = "backend_disabled"


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def backend_disabled(self) -> bool:
        return not self.ok and self.error_code == BACKEND_DISABLED

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = "unknown") -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)

    @staticmethod
    def from_exception(exc: BaseException, code: str = BACKEND_UNAVAILABLE) -> "Result[T]":
        """Wrap a caught backend exception, keeping its type name for the logs."""
        return Result(ok=False, error=f"{type(exc).__name__}: {exc}", error_code=code)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default
