"""One JSON object per log line on stdout.

Lines carry timestamp, level, logger and message. Records logged through
UserLoggerAdapter also carry the WhatsApp id of the conversation as a
top-level "user" field, so one customer's thread can be followed with a
single filter. Anything else passed as `context` is kept under "context".
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

NAMESPACE = "supportbot"

# Client libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = dict(getattr(record, "context", None) or {})
        user = context.pop("user", None)
        if user:
            log_data["user"] = user
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Message texts are Portuguese; keep accents readable.
        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Replace root handlers with a single JSON stdout handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{NAMESPACE}.{name}")


class UserLoggerAdapter(logging.LoggerAdapter):
    """Binds a conversation's WhatsApp id to every record.

    Call sites pass extra fields as `context={...}`; they are merged over
    the bound user id.
    """

    def __init__(self, logger: logging.Logger, user_id: str):
        super().__init__(logger, {"user": user_id})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = {**self.extra, **(kwargs.pop("context", None) or {})}
        kwargs["extra"] = {"context": context}
        return msg, kwargs
