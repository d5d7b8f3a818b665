"""Module containing command implementation."""

import collections.abc
import dataclasses
import enum
import typing

from respwire import error, protocol, reply

if typing.TYPE_CHECKING:
    import typing_extensions

__all__: collections.abc.Sequence[str] = (
    "KEYWORDS",
    "Command",
    "Encoding",
    "Keyword",
    "encode",
    "encode_bulk",
    "encode_inline",
)


Argument: typing.TypeAlias = "str | bytes | int | float"

KEYWORDS: typing.Final[frozenset[str]] = frozenset(
    ("BY", "LIMIT", "GET", "STORE", "ALPHA", "DESC", "WITHSCORES", "WEIGHTS"),
)


class Encoding(str, enum.Enum):
    INLINE = "inline"
    BULK = "bulk"


class Keyword(str):
    """A protocol keyword argument, such as ``Keyword("limit")``.

    Keywords are validated against ``KEYWORDS`` and upper-cased when the
    command is encoded. Plain strings are never treated as keywords.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Keyword({str(self)!r})"


def _convert_argument(value: Argument) -> bytes:
    if isinstance(value, Keyword):
        token = value.upper()
        if token not in KEYWORDS:
            msg = f"Error parsing arguments: unknown keyword argument {value!r}"
            raise error.EncodingError(msg)

        return token.encode()

    if isinstance(value, bytes):
        return value

    if isinstance(value, str):
        return value.encode()

    if isinstance(value, int | float):
        return str(value).encode()

    msg = f"Cannot encode argument of type {type(value).__name__}"
    raise error.EncodingError(msg)


def encode_inline(name: str | bytes, *args: Argument) -> bytes:
    """Join the command name and its arguments with spaces, ending in CR+LF."""
    parts = [_convert_argument(name), *map(_convert_argument, args)]
    return b" ".join(parts) + b"\r\n"


def encode_bulk(name: str | bytes, *args: Argument) -> bytes:
    """Encode a command whose last argument is sent as a length-prefixed payload."""
    if not args:
        msg = f"Bulk command {name!r} requires a payload argument"
        raise error.EncodingError(msg)

    *head, payload = args
    data = _convert_argument(payload)
    return encode_inline(name, *head, len(data)) + data + b"\r\n"


def encode(name: str | bytes, args: collections.abc.Sequence[Argument], kind: Encoding) -> bytes:
    """Encode a command with the given encoding kind."""
    if Encoding(kind) is Encoding.BULK:
        return encode_bulk(name, *args)

    return encode_inline(name, *args)


@dataclasses.dataclass(slots=True)
class Command:
    """A Redis command.

    This class handles encoding of arguments before they're accepted by a
    ``Connection``.
    """

    name: str
    arguments: list[Argument]
    kind: Encoding

    def __init__(
        self,
        name: str | bytes,
        *args: Argument,
        kind: Encoding = Encoding.INLINE,
    ) -> None:
        if isinstance(name, bytes):
            name = name.decode()

        self.name = name.upper()
        self.arguments = list(args)
        self.kind = kind

    def arg(self, value: Argument) -> "typing_extensions.Self":
        """Add an argument to this command."""
        self.arguments.append(value)
        return self

    def encode(self) -> bytes:
        """Encode this command to raw protocol bytes."""
        return encode(self.name, self.arguments, self.kind)

    async def execute(self, con: protocol.ConnectionProto) -> reply.Reply:
        """Execute this command on a given connection."""
        await con.write_command(self)
        return await con.read_response()
