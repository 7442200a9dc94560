import pytest

from supportbot.services.command_service import (
    HELP_TEXT,
    CloseCommand,
    CommandType,
    ListCommand,
    MalformedCommand,
    NoCommand,
    ReplyCommand,
    SendCommand,
    parse_command,
)


class TestReplyCommands:
    def test_respraw(self):
        command = parse_command("/respraw 5511999 oi")
        assert command == ReplyCommand(to="5511999", msg="oi", raw=True)
        assert command.type == CommandType.REPLY_RAW
        assert command.polish_eligible is False

    def test_resp_joins_body(self):
        command = parse_command("/resp 5511999 oi tudo bem")
        assert command.type == CommandType.REPLY
        assert command.to == "5511999"
        assert command.msg == "oi tudo bem"
        assert command.polish_eligible is True

    def test_respraw_never_parsed_as_resp(self):
        assert parse_command("/respraw 5511999 texto").type == CommandType.REPLY_RAW

    def test_extra_whitespace_collapsed(self):
        command = parse_command("  /resp   5511999   oi \n  tudo   bem  ")
        assert command == ReplyCommand(to="5511999", msg="oi tudo bem")

    def test_missing_body_is_malformed(self):
        assert parse_command("/resp 5511999") == MalformedCommand(directive="/resp")
        assert parse_command("/respraw 5511999   ") == MalformedCommand(directive="/respraw")


class TestOtherCommands:
    def test_enviar(self):
        assert parse_command("/enviar 5511999") == SendCommand(to="5511999")

    def test_enviar_ignores_extra_tokens(self):
        assert parse_command("/enviar 5511999 agora") == SendCommand(to="5511999")

    def test_fechar(self):
        command = parse_command("/fechar 5511999")
        assert command == CloseCommand(to="5511999")
        assert command.type == CommandType.CLOSE

    def test_abertos_exact(self):
        assert parse_command("/abertos") == ListCommand()
        assert parse_command("  /abertos  ").type == CommandType.LIST

    def test_abertos_with_arguments_is_not_list(self):
        assert parse_command("/abertos agora").type == CommandType.NONE


class TestUnrecognized:
    @pytest.mark.parametrize(
        "text",
        ["", "   ", "bom dia", "/resp", "/enviar", "/fechar", "/respostas 5511 oi", "/RESP 5511 oi", None],
    )
    def test_none(self, text):
        assert parse_command(text) == NoCommand()

    def test_help_lists_all_directives(self):
        for directive in ("/resp ", "/enviar ", "/respraw ", "/abertos", "/fechar "):
            assert directive in HELP_TEXT


class TestConstructionValidation:
    def test_reply_requires_recipient(self):
        with pytest.raises(ValueError):
            ReplyCommand(to="", msg="oi")

    def test_reply_requires_body(self):
        with pytest.raises(ValueError):
            ReplyCommand(to="5511", msg="  ")

    def test_send_requires_recipient(self):
        with pytest.raises(ValueError):
            SendCommand(to="")

    def test_close_requires_recipient(self):
        with pytest.raises(ValueError):
            CloseCommand(to="")
