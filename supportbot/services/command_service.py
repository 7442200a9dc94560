from dataclasses import dataclass
from enum import Enum
from typing import Union


class CommandType(str, Enum):
    REPLY = "reply"  # /resp: passa pelo polimento quando habilitado
    REPLY_RAW = "reply_raw"  # /respraw: texto vai como está
    SEND = "send"  # /enviar: confirma a prévia
    CLOSE = "close"  # /fechar
    LIST = "list"  # /abertos
    MALFORMED = "malformed"
    NONE = "none"


def _require(value: str, field_name: str, command_type: CommandType) -> None:
    if not value or not value.strip():
        raise ValueError(f"{command_type.value} requires a non-empty {field_name}")


@dataclass(frozen=True)
class ReplyCommand:
    to: str
    msg: str
    raw: bool = False

    def __post_init__(self):
        _require(self.to, "to", self.type)
        _require(self.msg, "msg", self.type)

    @property
    def type(self) -> CommandType:
        return CommandType.REPLY_RAW if self.raw else CommandType.REPLY

    @property
    def polish_eligible(self) -> bool:
        return not self.raw


@dataclass(frozen=True)
class SendCommand:
    to: str
    type = CommandType.SEND

    def __post_init__(self):
        _require(self.to, "to", self.type)


@dataclass(frozen=True)
class CloseCommand:
    to: str
    type = CommandType.CLOSE

    def __post_init__(self):
        _require(self.to, "to", self.type)


@dataclass(frozen=True)
class ListCommand:
    type = CommandType.LIST


@dataclass(frozen=True)
class MalformedCommand:
    """Known directive with missing arguments. Dropped without a reply."""

    directive: str
    type = CommandType.MALFORMED


@dataclass(frozen=True)
class NoCommand:
    type = CommandType.NONE


Command = Union[ReplyCommand, SendCommand, CloseCommand, ListCommand, MalformedCommand, NoCommand]

REPLY_RAW_DIRECTIVE = "/respraw"
REPLY_DIRECTIVE = "/resp"
SEND_DIRECTIVE = "/enviar"
CLOSE_DIRECTIVE = "/fechar"
LIST_DIRECTIVE = "/abertos"

HELP_TEXT = (
    "Comandos disponíveis:\n"
    "/resp 55XXXXXXXXX mensagem (gera prévia)\n"
    "/enviar 55XXXXXXXXX (confirma envio)\n"
    "/respraw 55XXXXXXXXX mensagem (envio direto sem polir)\n"
    "/abertos\n"
    "/fechar 55XXXXXXXXX"
)


def parse_command(text: str) -> Command:
    """
    Parse an operator message.

    The first token is the directive, the second the recipient, the rest the
    body joined with single spaces. Directives are compared as whole tokens,
    so "/respraw" never matches "/resp".
    """
    stripped = (text or "").strip()
    if stripped == LIST_DIRECTIVE:
        return ListCommand()

    tokens = stripped.split()
    if len(tokens) < 2:
        return NoCommand()

    directive, to, body = tokens[0], tokens[1], " ".join(tokens[2:])

    if directive in (REPLY_RAW_DIRECTIVE, REPLY_DIRECTIVE):
        if not body:
            return MalformedCommand(directive=directive)
        return ReplyCommand(to=to, msg=body, raw=directive == REPLY_RAW_DIRECTIVE)

    if directive == SEND_DIRECTIVE:
        return SendCommand(to=to)

    if directive == CLOSE_DIRECTIVE:
        return CloseCommand(to=to)

    return NoCommand()
