import json
import logging

from supportbot.logging_config import JSONFormatter, UserLoggerAdapter, get_logger


def _record(message: str, context=None) -> logging.LogRecord:
    record = logging.LogRecord("supportbot.test", logging.INFO, __file__, 1, message, None, None)
    if context is not None:
        record.context = context
    return record


class TestJSONFormatter:
    def test_plain_record(self):
        line = json.loads(JSONFormatter().format(_record("Message received")))

        assert line["level"] == "INFO"
        assert line["logger"] == "supportbot.test"
        assert line["message"] == "Message received"
        assert "user" not in line
        assert "context" not in line

    def test_user_is_hoisted_out_of_context(self):
        record = _record("Handover", {"user": "5511999990000", "mode": "HUMAN"})

        line = json.loads(JSONFormatter().format(record))

        assert line["user"] == "5511999990000"
        assert line["context"] == {"mode": "HUMAN"}
        assert record.context == {"user": "5511999990000", "mode": "HUMAN"}

    def test_accents_are_not_escaped(self):
        assert "técnico" in JSONFormatter().format(_record("pediu técnico"))


class TestUserLoggerAdapter:
    def test_merges_context_over_bound_user(self):
        adapter = UserLoggerAdapter(get_logger("test"), "5511999990000")

        msg, kwargs = adapter.process("AI reply", {"context": {"elapsed_ms": 12}})

        assert msg == "AI reply"
        assert kwargs["extra"] == {"context": {"user": "5511999990000", "elapsed_ms": 12}}

    def test_get_logger_namespace(self):
        assert get_logger("router").name == "supportbot.router"
