"""Module containing the reply parser."""

import asyncio
import collections.abc
import enum
import typing

from respwire import error

__all__: collections.abc.Sequence[str] = (
    "ByteResponse",
    "Reply",
    "SimpleString",
    "parse_reply",
    "read_line",
)


_CR: typing.Final = b"\r"
_CRLF: typing.Final = b"\r\n"


class ByteResponse(bytes, enum.Enum):
    SIMPLE_STRING = b"+"
    ERROR = b"-"
    INTEGER = b":"
    BULK_STRING = b"$"
    ARRAY = b"*"


class SimpleString(bytes):
    """A status reply, such as ``+OK``.

    Kept apart from plain ``bytes`` so callers can tell a status reply from a
    bulk string with the same content.
    """

    def __repr__(self) -> str:
        return f"SimpleString({bytes(self)!r})"


Reply: typing.TypeAlias = "SimpleString | bytes | int | list[Reply] | None"


async def read_line(reader: asyncio.StreamReader) -> bytes:
    """Read up to and excluding an exact CR+LF sequence.

    A lone CR or LF is never accepted as a terminator.
    """
    try:
        data = await reader.readuntil(_CRLF)

    except asyncio.IncompleteReadError as exc:
        if _CR in exc.partial and not exc.partial.endswith(_CR):
            msg = "Error reading line: missing LF"
            raise error.ProtocolError(msg) from exc

        msg = "Error reading line: EOF reached before CR/LF sequence"
        raise error.ProtocolError(msg) from exc

    except asyncio.LimitOverrunError as exc:
        msg = "Error reading line: line exceeds the stream buffer limit"
        raise error.ProtocolError(msg) from exc

    line = data[:-2]
    if _CR in line:
        msg = "Error reading line: missing LF"
        raise error.ProtocolError(msg)

    return line


def _parse_int(line: bytes) -> int:
    try:
        return int(line.strip())

    except ValueError as exc:
        msg = f"Expected an integer, got {line!r}"
        raise error.ProtocolError(msg) from exc


async def _read_bulk(reader: asyncio.StreamReader, length: int) -> bytes:
    # readexactly loops over partial reads until the full payload has arrived.
    try:
        data = await reader.readexactly(length + 2)

    except asyncio.IncompleteReadError as exc:
        msg = f"EOF reached after {len(exc.partial)} of {length + 2} bulk bytes"
        raise error.ProtocolError(msg) from exc

    if data[-2:] != _CRLF:
        msg = f"Bulk string of declared length {length} is not followed by CR/LF"
        raise error.ProtocolError(msg)

    return data[:-2]


async def parse_reply(reader: asyncio.StreamReader) -> Reply:
    """Parse exactly one reply from ``reader``.

    Error replies are raised as ``ResponseError`` rather than returned. The
    reader is left positioned at the start of the next reply.
    """
    byte = await reader.read(1)
    if not byte:
        msg = "Error reading reply: EOF reached before reply type"
        raise error.ProtocolError(msg)

    if byte == ByteResponse.SIMPLE_STRING:
        return SimpleString(await read_line(reader))

    if byte == ByteResponse.ERROR:
        raise error.ResponseError.from_response(await read_line(reader))

    if byte == ByteResponse.INTEGER:
        return _parse_int(await read_line(reader))

    if byte == ByteResponse.BULK_STRING:
        length = _parse_int(await read_line(reader))
        if length < 0:
            return None

        return await _read_bulk(reader, length)

    if byte == ByteResponse.ARRAY:
        count = _parse_int(await read_line(reader))
        if count < 0:
            return None

        return [await parse_reply(reader) for _ in range(count)]

    msg = f"Unknown reply type: {byte!r}"
    raise error.ProtocolError(msg)
